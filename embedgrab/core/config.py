import os
import json
import base64
import logging
import uuid
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

ENV_PREFIX = "EMBEDGRAB_"


@dataclass(frozen=True)
class ExtractorSettings:
    """
    Tunables of the extraction pipeline.

    ssl_bypass_from_attempt is 1-based: with the default of 2 the first
    attempt verifies certificates and every retry skips verification.
    0 disables the bypass entirely.
    """
    timeout_ms: int = 15000
    max_retries: int = 3
    user_agent: str = DEFAULT_USER_AGENT
    ssl_bypass_from_attempt: int = 2
    impersonate: str = "chrome120"

    def __post_init__(self):
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive (got {self.timeout_ms})")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1 (got {self.max_retries})")
        if self.ssl_bypass_from_attempt < 0:
            raise ValueError("ssl_bypass_from_attempt cannot be negative")
        if not self.user_agent.strip():
            raise ValueError("user_agent cannot be empty")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def bypass_ssl_for(self, attempt_index: int) -> bool:
        """Whether the 0-based attempt runs with certificate checks off."""
        if self.ssl_bypass_from_attempt == 0:
            return False
        return attempt_index + 1 >= self.ssl_bypass_from_attempt

    @classmethod
    def keys(cls):
        return [f.name for f in fields(cls)]

    @classmethod
    def coerce(cls, key: str, value):
        """Convert a raw (string) value to the type of `key`."""
        if key not in cls.keys():
            raise KeyError(f"Unknown setting: {key}")
        if key in ("timeout_ms", "max_retries", "ssl_bypass_from_attempt"):
            return int(value)
        return str(value)

    @classmethod
    def load(cls, config_repo=None, environ: Optional[Mapping[str, str]] = None) -> "ExtractorSettings":
        """Defaults, then persisted config, then EMBEDGRAB_* environment variables."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        settings = cls()
        for key in cls.keys():
            raw = config_repo.get(key) if config_repo is not None else None
            env_raw = environ.get(ENV_PREFIX + key.upper())
            if env_raw is not None:
                raw = env_raw
            if raw is None:
                continue
            try:
                settings = replace(settings, **{key: cls.coerce(key, raw)})
            except ValueError:
                logger.warning("[CONFIG] Ignoring invalid value for %s: %r", key, raw)
        return settings


class SecureConfigRepository:
    """
    Manages encrypted configuration settings.
    Saves to 'embedgrab/config.enc' under the given root.
    """
    def __init__(self, root_path: Path):
        config_dir = Path(root_path) / "embedgrab"
        config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path = config_dir / "config.enc"
        self._key = self._derive_key()
        self._fernet = Fernet(self._key)
        self._cache = {}
        self._load()

    def _derive_key(self) -> bytes:
        """
        Derive a consistent key from a machine-specific seed.
        """
        machine_id = str(uuid.getnode())

        # Salt must be consistent for the file to be readable across restarts
        salt = b'embedgrab_secure_salt_v1'

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=100000,
        )
        return base64.urlsafe_b64encode(kdf.derive(machine_id.encode()))

    def _load(self):
        if not self.config_path.exists():
            self._cache = {}
            return

        try:
            data = self.config_path.read_bytes()
            self._cache = json.loads(self._fernet.decrypt(data).decode())
        except (InvalidToken, ValueError, OSError) as e:
            # Tampered or corrupt file: start from an empty config
            logger.warning("[CONFIG] Could not read %s (%s), starting empty", self.config_path, e)
            self._cache = {}

    def save(self):
        data_str = json.dumps(self._cache)
        self.config_path.write_bytes(self._fernet.encrypt(data_str.encode()))

    def get(self, key: str, default=None):
        return self._cache.get(key, default)

    def set(self, key: str, value):
        self._cache[key] = value
        self.save()

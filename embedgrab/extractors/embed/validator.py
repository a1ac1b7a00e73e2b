import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from embedgrab.core.errors import ExtractionFailure, FailureKind
from embedgrab.core.interfaces import NetworkAdapter

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = (200, 206)  # 206: a Range header is always sent
WRONG_IP_MARKERS = ("error_wrong_ip", "wrong ip")


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    failure: Optional[ExtractionFailure] = None


class DirectUrlValidator:
    """Confirms a candidate media URL answers a HEAD request with the replay headers."""

    def __init__(self, network: NetworkAdapter):
        self.network = network

    def validate(self, url: str, headers: Mapping[str, str], bypass_ssl: bool = False) -> ValidationResult:
        probe = self.network.probe(url, headers, bypass_ssl=bypass_ssl)

        if probe.status_code is None:
            logger.warning("[VALIDATE] %s unreachable: %s", url, probe.error)
            return ValidationResult(False, ExtractionFailure(
                FailureKind.VALIDATION_FAILED,
                f"Direct URL unreachable: {probe.error or 'no response'}",
            ))

        if probe.status_code in SUCCESS_STATUSES:
            logger.debug("[VALIDATE] %s accessible (HTTP %s)", url, probe.status_code)
            return ValidationResult(True)

        body = probe.body or ""
        logger.warning("[VALIDATE] %s -> HTTP %s %s", url, probe.status_code, body[:200])
        if probe.status_code == 403 and any(m in body.lower() for m in WRONG_IP_MARKERS):
            return ValidationResult(False, ExtractionFailure(
                FailureKind.WRONG_IP, "error_wrong_ip", status_code=403,
            ))
        return ValidationResult(False, ExtractionFailure(
            FailureKind.VALIDATION_FAILED,
            f"HTTP {probe.status_code}: {body.strip()}" if body.strip() else f"HTTP {probe.status_code}",
            status_code=probe.status_code,
        ))

"""Per-host constants for embed page extraction."""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Pattern, Tuple


@dataclass(frozen=True)
class HostProfile:
    name: str
    # Hostnames served by this profile (subdomains included)
    hosts: Tuple[str, ...] = ()
    # Mirror hostname -> canonical hostname, applied before any fetch
    mirrors: Dict[str, str] = field(default_factory=dict)
    # Page chrome marker; titles containing it are rejected
    brand: Optional[str] = None
    # Fixed media path shape used by the host's older players
    legacy_pattern: Optional[Pattern] = None
    # Used as Referer/Origin when the embed URL cannot be parsed
    default_referer: str = "https://uqload.cx"

    def matches(self, hostname: str) -> bool:
        hostname = hostname.lower()
        return any(hostname == h or hostname.endswith("." + h) for h in self.hosts)

    @property
    def brute_force_allowlist(self) -> Tuple[str, ...]:
        base = ("cdn", "stream")
        return ((self.brand,) + base) if self.brand else base


UQLOAD = HostProfile(
    name="uqload",
    hosts=("uqload.cx", "uqload.to", "uqload.com", "uqload.io", "uqload.co"),
    mirrors={"uqload.to": "uqload.cx", "uqload.com": "uqload.cx"},
    brand="uqload",
    legacy_pattern=re.compile(r"https?://[^\s\"'<>]+/v\.mp4"),
    default_referer="https://uqload.cx",
)

GENERIC = HostProfile(name="generic")

PROFILES = (UQLOAD, GENERIC)


def get_profile(name: str) -> HostProfile:
    for profile in PROFILES:
        if profile.name == name:
            return profile
    raise KeyError(f"Unknown host profile: {name}")

from typing import Optional
from urllib.parse import urlsplit

from embedgrab.extractors.embed.hosts import PROFILES, HostProfile, GENERIC

def detect_platform(url: str) -> Optional[HostProfile]:
    """
    Identify the host profile for a given URL.

    Returns:
        The matching profile, GENERIC for any other http(s) URL, or None
        when the URL is not http(s) at all.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    for profile in PROFILES:
        if profile.matches(parts.hostname):
            return profile
    return GENERIC

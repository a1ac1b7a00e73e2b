from typing import Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

from embedgrab.extractors.embed.hosts import HostProfile

def resolve_url(url: str, profile: HostProfile) -> str:
    """
    Rewrite a known mirror host to the profile's canonical host.

    Args:
        url: The embed URL as given by the caller.
        profile: Host profile carrying the mirror table.

    Returns:
        The canonical URL (unchanged when no mirror rule applies).
    """
    try:
        parts = urlsplit(url.strip())
        hostname = (parts.hostname or "").lower()
    except ValueError:
        # Unparseable: fetched as given, the fetches fail soft
        return url.strip()
    for mirror, canonical in profile.mirrors.items():
        if hostname == mirror or hostname.endswith("." + mirror):
            new_host = hostname[: -len(mirror)] + canonical
            netloc = parts.netloc.lower().replace(hostname, new_host, 1)
            return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
    return url.strip()

def derive_non_embed_url(embed_url: str) -> str:
    """The watch-page variant of an embed URL (`embed-` prefix and `/embed/` segment removed)."""
    return embed_url.replace("embed-", "").replace("/embed/", "/")

def select_embed_url(record: Mapping) -> Optional[str]:
    """
    Pick the embed URL of a catalog record (movie, episode).

    The legacy field wins when non-blank, the current field otherwise.
    """
    for key in ("uqload_old_url", "uqload_new_url"):
        value = record.get(key)
        if value and str(value).strip():
            return str(value).strip()
    return None

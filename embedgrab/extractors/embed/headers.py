from typing import Dict
from urllib.parse import urlsplit

from embedgrab.core.entities import StreamFormat

ACCEPT_BY_FORMAT = {
    StreamFormat.HLS: "application/vnd.apple.mpegurl,application/x-mpegURL,application/octet-stream,*/*",
    StreamFormat.DASH: "application/dash+xml,application/octet-stream,*/*",
    StreamFormat.MP4: "video/mp4,video/*,*/*",
}


def referer_from_url(url: str, default: str) -> str:
    """scheme://host of `url`, or `default` when it does not parse."""
    try:
        parts = urlsplit(url)
        if parts.scheme and parts.hostname:
            return f"{parts.scheme}://{parts.hostname}"
    except ValueError:
        pass
    return default


def build_stream_headers(cookies: str, referer: str, fmt: StreamFormat, user_agent: str) -> Dict[str, str]:
    """Headers for requests against the media URL itself."""
    manifest = fmt in (StreamFormat.HLS, StreamFormat.DASH)
    return {
        "Cookie": cookies,
        "Referer": referer,
        "Origin": referer,
        "User-Agent": user_agent,
        "Accept": ACCEPT_BY_FORMAT.get(fmt, ACCEPT_BY_FORMAT[StreamFormat.MP4]),
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "identity",
        "Range": "bytes=0-",
        "Sec-Fetch-Dest": "video" if manifest else "document",
        "Sec-Fetch-Mode": "cors" if manifest else "navigate",
        "Sec-Fetch-Site": "same-site",
        "Connection": "keep-alive",
    }

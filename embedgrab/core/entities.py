from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

class StreamFormat(Enum):
    HLS = "hls"
    DASH = "dash"
    MP4 = "mp4"
    AUTO = "auto"  # Parser-only placeholder, resolved from the URL

@dataclass(frozen=True)
class ExtractionRequest:
    """One call to the extractor: the embed URL as given plus its canonical form."""
    url: str
    max_retries: int = 3
    normalized_url: Optional[str] = None

    def __post_init__(self):
        if not self.url or not self.url.strip():
            raise ValueError("missing embed URL")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1 (got {self.max_retries})")

    @property
    def fetch_url(self) -> str:
        return self.normalized_url or self.url

@dataclass
class FetchResult:
    """Outcome of a single page fetch. Ephemeral."""
    url: str
    body: Optional[str] = None
    cookies: str = ""
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200 and self.body is not None

@dataclass
class PageBundle:
    """Both bodies of one attempt plus the cookie string selected for it."""
    embed_body: Optional[str] = None
    non_embed_body: Optional[str] = None
    cookies: str = ""

    @property
    def is_empty(self) -> bool:
        return self.embed_body is None and self.non_embed_body is None

    def bodies(self):
        """Non-null bodies, embed first."""
        return [b for b in (self.embed_body, self.non_embed_body) if b is not None]

@dataclass(frozen=True)
class CandidateStream:
    """A media URL found in page content, not yet confirmed reachable."""
    url: str
    format: StreamFormat
    strategy: str = ""

    def __post_init__(self):
        if not self.url or not self.url.strip():
            raise ValueError("candidate stream URL cannot be blank")
        if self.format is StreamFormat.AUTO:
            raise ValueError("candidate format must be resolved before construction")

@dataclass(frozen=True)
class PageMetadata:
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    quality: Optional[str] = None
    duration: Optional[str] = None

@dataclass(frozen=True)
class ProbeResult:
    """Raw outcome of a HEAD request against a candidate URL."""
    status_code: Optional[int] = None
    body: str = ""
    error: Optional[str] = None

@dataclass(frozen=True)
class ExtractedStreamInfo:
    """
    Final result handed to the playback layer.

    `headers` must be replayed verbatim on every request made against `url`
    (manifest sub-requests included); reachability was confirmed with them.
    """
    url: str
    format: StreamFormat
    headers: Mapping[str, str] = field(default_factory=dict)
    title: Optional[str] = None
    quality: Optional[str] = None
    duration: Optional[str] = None
    thumbnail: Optional[str] = None

    def __post_init__(self):
        if self.format is StreamFormat.AUTO:
            raise ValueError("stream format must be one of hls, dash, mp4")
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "quality": self.quality,
            "format": self.format.value,
            "duration": self.duration,
            "thumbnail": self.thumbnail,
            "headers": dict(self.headers),
        }

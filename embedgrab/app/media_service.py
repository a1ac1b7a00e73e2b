import logging
import threading
from typing import Mapping, Optional

from embedgrab.core.errors import UnsupportedUrlError
from embedgrab.extractors.registry import ExtractorRegistry
from embedgrab.extractors.result import ExtractionOutcome
from embedgrab.extractors.embed.candidates import parse_candidate
from embedgrab.extractors.embed.hosts import GENERIC, get_profile
from embedgrab.extractors.embed.metadata import extract_metadata
from embedgrab.sources.resolver import select_embed_url

logger = logging.getLogger(__name__)


class MediaService:
    """
    Service for turning embed URLs into playable streams.

    RESPONSIBILITIES:
    - Orchestrate the "Detection -> Extraction" pipeline.
    - Return typed outcomes (ExtractionOutcome) to the caller.
    - It does NOT play or download media.
    - It does NOT persist anything.
    """

    def __init__(self, registry: ExtractorRegistry):
        self.registry = registry

    def resolve_stream(self, url: str, max_retries: Optional[int] = None,
                       cancel_event: Optional[threading.Event] = None) -> ExtractionOutcome:
        """
        Main entry point for resolving an embed URL.
        """
        extractor = self.registry.get_extractor(url)
        if extractor is None:
            raise UnsupportedUrlError(f"No extractor supports {url!r}")
        logger.debug("Using %s for %s", type(extractor).__name__, url)
        return extractor.extract(url, max_retries=max_retries, cancel_event=cancel_event)

    def resolve_entry(self, record: Mapping, max_retries: Optional[int] = None,
                      cancel_event: Optional[threading.Event] = None) -> ExtractionOutcome:
        """Resolve the embed URL a catalog record points to."""
        url = select_embed_url(record)
        if not url:
            raise UnsupportedUrlError("Catalog entry has no embed URL")
        return self.resolve_stream(url, max_retries=max_retries, cancel_event=cancel_event)

    @staticmethod
    def inspect_document(text: str, platform: Optional[str] = None) -> dict:
        """Run the candidate cascade and metadata scrape on saved page content, offline."""
        profile = get_profile(platform) if platform else GENERIC
        candidate = parse_candidate(text, profile)
        meta = extract_metadata(text, profile.brand)
        return {
            "url": candidate.url if candidate else None,
            "format": candidate.format.value if candidate else None,
            "strategy": candidate.strategy if candidate else None,
            "title": meta.title,
            "thumbnail": meta.thumbnail,
            "quality": meta.quality,
            "duration": meta.duration,
        }

import logging
import threading
import time
from typing import Optional, Tuple, Union

from embedgrab.core.config import ExtractorSettings
from embedgrab.core.entities import CandidateStream, ExtractedStreamInfo, ExtractionRequest, PageBundle
from embedgrab.core.errors import ExtractionCancelled, ExtractionFailure, FailureKind
from embedgrab.core.interfaces import NetworkAdapter
from embedgrab.sources.detector import detect_platform
from embedgrab.sources.resolver import resolve_url
from ..base import BaseExtractor
from ..result import ExtractionOutcome
from .candidates import describe_page, find_absent_marker, parse_candidate
from .headers import build_stream_headers, referer_from_url
from .hosts import GENERIC, HostProfile
from .metadata import extract_metadata, merge_metadata
from .retriever import ParallelPageRetriever
from .validator import DirectUrlValidator

logger = logging.getLogger(__name__)

AttemptResult = Union[ExtractedStreamInfo, ExtractionFailure]


class EmbedExtractor(BaseExtractor):
    """
    Embed page -> validated direct stream URL.

    Attempts run one after another. Inside an attempt the embed and
    non-embed pages are fetched in parallel, the candidate cascade runs over
    them and the winner is HEAD-checked with the headers the player will
    replay. Only a missing page pair or a wrong-IP rejection is retried; a
    deleted video, a page without a stream or any other failed media check
    ends the call at once.
    """

    def __init__(self, network: NetworkAdapter, settings: Optional[ExtractorSettings] = None,
                 profile: HostProfile = GENERIC, retriever: Optional[ParallelPageRetriever] = None,
                 validator: Optional[DirectUrlValidator] = None):
        self.settings = settings or ExtractorSettings()
        self.profile = profile
        self.retriever = retriever or ParallelPageRetriever(network)
        self.validator = validator or DirectUrlValidator(network)

    def supports(self, url: str) -> bool:
        detected = detect_platform(url)
        if detected is None:
            return False
        return self.profile is GENERIC or detected.name == self.profile.name

    def extract(self, url: str, max_retries: Optional[int] = None,
                cancel_event: Optional[threading.Event] = None) -> ExtractionOutcome:
        request = ExtractionRequest(
            url=url.strip(),
            max_retries=max_retries if max_retries is not None else self.settings.max_retries,
            normalized_url=resolve_url(url, self.profile),
        )
        return self.run(request, cancel_event)

    def run(self, request: ExtractionRequest, cancel_event: Optional[threading.Event] = None) -> ExtractionOutcome:
        attempt = 0
        cookies = ""
        last_failure: Optional[ExtractionFailure] = None

        while attempt < request.max_retries:
            self._check_cancelled(cancel_event)
            logger.info("[EXTRACT] %s (attempt %d/%d)", request.fetch_url, attempt + 1, request.max_retries)
            started = time.monotonic()

            result, cookies = self._attempt(request, attempt, cookies, cancel_event)

            if isinstance(result, ExtractedStreamInfo):
                logger.info("[EXTRACT] Resolved %s in %.0fms", result.url, (time.monotonic() - started) * 1000)
                return ExtractionOutcome.success(result, attempts=attempt + 1)

            if not result.retryable:
                logger.warning("[EXTRACT] Giving up on %s: %s", request.url, result.message)
                return ExtractionOutcome.fail(result, attempts=attempt + 1)

            logger.info("[EXTRACT] Retryable failure (%s): %s", result.kind.value, result.message)
            last_failure = result
            attempt += 1

        reason = f": {last_failure.message}" if last_failure else ""
        return ExtractionOutcome.fail(
            ExtractionFailure(FailureKind.RETRIES_EXHAUSTED, f"Failed after {request.max_retries} attempts{reason}"),
            attempts=request.max_retries,
        )

    def _attempt(self, request: ExtractionRequest, attempt: int, cookies: str,
                 cancel_event: Optional[threading.Event]) -> Tuple[AttemptResult, str]:
        bypass_ssl = self.settings.bypass_ssl_for(attempt)
        bundle = self.retriever.fetch_both(
            request.fetch_url, bypass_ssl=bypass_ssl, cookies=cookies, cancel_event=cancel_event,
        )
        # Cookies from an earlier attempt stay valid until the host hands out new ones
        cookies = bundle.cookies or cookies
        self._check_cancelled(cancel_event)

        if bundle.is_empty:
            return ExtractionFailure(FailureKind.NETWORK_UNREACHABLE, "No content fetched from either URL"), cookies

        marker = find_absent_marker(bundle.embed_body, bundle.non_embed_body)
        if marker:
            return ExtractionFailure(
                FailureKind.CONTENT_ABSENT,
                f"The video has been deleted or does not exist ({marker})",
            ), cookies

        candidate = self._find_candidate(bundle, request.fetch_url)
        if candidate is None:
            logger.warning("[PARSE] No video URL found for %s", request.fetch_url)
            if logger.isEnabledFor(logging.DEBUG):
                for line in describe_page(bundle.bodies()[0]):
                    logger.debug("[PARSE] %s", line)
            return ExtractionFailure(FailureKind.NO_CANDIDATE, "No video stream found"), cookies

        referer = referer_from_url(request.fetch_url, self.profile.default_referer)
        headers = build_stream_headers(cookies, referer, candidate.format, self.settings.user_agent)
        validation = self.validator.validate(candidate.url, headers, bypass_ssl=bypass_ssl)
        self._check_cancelled(cancel_event)
        if not validation.ok:
            return validation.failure, cookies

        return self._build_info(candidate, bundle, cookies, request.url), cookies

    def _find_candidate(self, bundle: PageBundle, base_url: str) -> Optional[CandidateStream]:
        # Embed body first; the watch page is only a fallback source
        for body in bundle.bodies():
            candidate = parse_candidate(body, self.profile, base_url=base_url)
            if candidate:
                return candidate
        return None

    def _build_info(self, candidate: CandidateStream, bundle: PageBundle, cookies: str,
                    original_url: str) -> ExtractedStreamInfo:
        brand = self.profile.brand
        # The watch page usually carries the real title; embed page fills the gaps
        meta = merge_metadata(
            extract_metadata(bundle.non_embed_body, brand),
            extract_metadata(bundle.embed_body, brand),
        )
        referer = referer_from_url(original_url, self.profile.default_referer)
        return ExtractedStreamInfo(
            url=candidate.url,
            format=candidate.format,
            headers=build_stream_headers(cookies, referer, candidate.format, self.settings.user_agent),
            title=meta.title,
            quality=meta.quality,
            duration=meta.duration,
            thumbnail=meta.thumbnail,
        )

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelled("Extraction cancelled")

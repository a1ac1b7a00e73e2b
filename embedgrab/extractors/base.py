import threading
from abc import ABC, abstractmethod
from typing import Optional

from .result import ExtractionOutcome

class BaseExtractor(ABC):
    """
    Abstract base class for all stream extractors.

    CRITICAL BOUNDARIES:
    - Extractors ONLY turn an embed URL into a playable URL plus replay headers.
    - Extractors do NOT download media content.
    - Extractors do NOT persist anything.
    """

    @abstractmethod
    def supports(self, url: str) -> bool:
        """
        Check if this extractor supports the given URL.

        Args:
            url: The URL to check.

        Returns:
            True if supported, False otherwise.
        """
        pass

    @abstractmethod
    def extract(self, url: str, max_retries: Optional[int] = None,
                cancel_event: Optional[threading.Event] = None) -> ExtractionOutcome:
        """
        Resolve the given embed URL into a validated stream.

        Args:
            url: The embed URL.
            max_retries: Attempt budget; the configured default when None.
            cancel_event: Set by the caller to abort the whole call.

        Returns:
            ExtractionOutcome: success with stream info, or a typed failure.

        Raises:
            ExtractionCancelled: if cancel_event was set mid-flight.
        """
        pass

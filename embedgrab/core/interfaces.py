from abc import ABC, abstractmethod
from typing import Mapping

from embedgrab.core.entities import FetchResult, ProbeResult

class NetworkAdapter(ABC):
    @abstractmethod
    def fetch_page(self, url: str, bypass_ssl: bool = False, cookies: str = "") -> FetchResult:
        """GET a page. Never raises: failures come back as an empty FetchResult."""
        pass

    @abstractmethod
    def probe(self, url: str, headers: Mapping[str, str], bypass_ssl: bool = False) -> ProbeResult:
        """HEAD a media URL with the given headers. Never raises."""
        pass

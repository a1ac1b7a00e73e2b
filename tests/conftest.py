from __future__ import annotations

import sys
import threading
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from embedgrab.core.config import ExtractorSettings
from embedgrab.core.entities import FetchResult, ProbeResult
from embedgrab.core.interfaces import NetworkAdapter
from embedgrab.extractors.embed.extractor import EmbedExtractor
from embedgrab.extractors.embed.hosts import UQLOAD

EMBED_URL = "https://uqload.to/embed-abc123.html"
CANONICAL_EMBED_URL = "https://uqload.cx/embed-abc123.html"
CANONICAL_PAGE_URL = "https://uqload.cx/abc123.html"

SCENARIO_A_BODY = """
<html><head><title>Uqload - embed</title></head><body>
<script>
var player = new Clappr.Player({
    sources: [{file: "https://cdn.example/abc123/v.mp4"}],
    poster: "https://cdn.example/abc123/poster.jpg"
});
</script>
</body></html>
"""


class FakeNetwork(NetworkAdapter):
    """
    In-memory NetworkAdapter.

    `pages` maps URL -> body string or FetchResult; unknown URLs fail soft.
    `probes` is consumed in order, the last entry repeating.
    """

    def __init__(self, pages=None, probes=None):
        self.pages = dict(pages or {})
        self.probes = list(probes or [ProbeResult(status_code=200)])
        self.fetch_calls = []
        self.probe_calls = []
        self._lock = threading.Lock()

    def fetch_page(self, url, bypass_ssl=False, cookies=""):
        with self._lock:
            self.fetch_calls.append((url, bypass_ssl, cookies))
        page = self.pages.get(url)
        if page is None:
            return FetchResult(url=url)
        if isinstance(page, str):
            return FetchResult(url=url, body=page, status_code=200)
        return page

    def probe(self, url, headers, bypass_ssl=False):
        with self._lock:
            self.probe_calls.append((url, dict(headers), bypass_ssl))
            if len(self.probes) > 1:
                return self.probes.pop(0)
            return self.probes[0]


@pytest.fixture
def settings():
    return ExtractorSettings()


@pytest.fixture
def make_extractor(settings):
    def factory(network, profile=UQLOAD):
        return EmbedExtractor(network, settings, profile=profile)
    return factory

from __future__ import annotations

import threading
import time

import pytest

from embedgrab.core.entities import FetchResult
from embedgrab.core.errors import ExtractionCancelled
from embedgrab.extractors.embed.retriever import ParallelPageRetriever
from embedgrab.sources.resolver import derive_non_embed_url

from conftest import CANONICAL_EMBED_URL, CANONICAL_PAGE_URL, FakeNetwork


def test_derive_non_embed_url():
    assert derive_non_embed_url("https://uqload.cx/embed-abc123.html") == "https://uqload.cx/abc123.html"
    assert derive_non_embed_url("https://host.example/embed/xyz") == "https://host.example/xyz"
    assert derive_non_embed_url("https://host.example/v/xyz") == "https://host.example/v/xyz"


def test_embed_cookies_win_when_present():
    network = FakeNetwork(pages={
        CANONICAL_EMBED_URL: FetchResult(CANONICAL_EMBED_URL, body="e", cookies="a=1", status_code=200),
        CANONICAL_PAGE_URL: FetchResult(CANONICAL_PAGE_URL, body="n", cookies="b=2", status_code=200),
    })
    bundle = ParallelPageRetriever(network).fetch_both(CANONICAL_EMBED_URL)
    assert bundle.cookies == "a=1"
    assert (bundle.embed_body, bundle.non_embed_body) == ("e", "n")


def test_non_embed_cookies_used_as_fallback():
    network = FakeNetwork(pages={
        CANONICAL_EMBED_URL: FetchResult(CANONICAL_EMBED_URL, body="e", cookies="", status_code=200),
        CANONICAL_PAGE_URL: FetchResult(CANONICAL_PAGE_URL, body="n", cookies="b=2", status_code=200),
    })
    assert ParallelPageRetriever(network).fetch_both(CANONICAL_EMBED_URL).cookies == "b=2"


def test_one_failed_branch_keeps_the_other():
    network = FakeNetwork(pages={CANONICAL_PAGE_URL: "watch page"})
    bundle = ParallelPageRetriever(network).fetch_both(CANONICAL_EMBED_URL)
    assert bundle.embed_body is None
    assert bundle.non_embed_body == "watch page"
    assert not bundle.is_empty


def test_flags_are_passed_to_both_fetches():
    network = FakeNetwork()
    ParallelPageRetriever(network).fetch_both(CANONICAL_EMBED_URL, bypass_ssl=True, cookies="sid=9")
    assert sorted(network.fetch_calls) == sorted([
        (CANONICAL_EMBED_URL, True, "sid=9"),
        (CANONICAL_PAGE_URL, True, "sid=9"),
    ])


class BarrierNetwork(FakeNetwork):
    """Each fetch waits for the other one: only succeeds if both run at once."""

    def __init__(self, pages):
        super().__init__(pages=pages)
        self.barrier = threading.Barrier(2, timeout=5)

    def fetch_page(self, url, bypass_ssl=False, cookies=""):
        self.barrier.wait()
        return super().fetch_page(url, bypass_ssl, cookies)


def test_fetches_run_concurrently():
    network = BarrierNetwork({CANONICAL_EMBED_URL: "e", CANONICAL_PAGE_URL: "n"})
    bundle = ParallelPageRetriever(network).fetch_both(CANONICAL_EMBED_URL)
    assert (bundle.embed_body, bundle.non_embed_body) == ("e", "n")


class RaisingNetwork(FakeNetwork):
    def fetch_page(self, url, bypass_ssl=False, cookies=""):
        if url == CANONICAL_EMBED_URL:
            raise RuntimeError("adapter bug")
        return super().fetch_page(url, bypass_ssl, cookies)


def test_raising_branch_is_treated_as_empty():
    network = RaisingNetwork(pages={CANONICAL_PAGE_URL: "n"})
    bundle = ParallelPageRetriever(network).fetch_both(CANONICAL_EMBED_URL)
    assert bundle.embed_body is None
    assert bundle.non_embed_body == "n"


def test_preset_cancel_event_aborts():
    event = threading.Event()
    event.set()
    with pytest.raises(ExtractionCancelled):
        ParallelPageRetriever(FakeNetwork()).fetch_both(CANONICAL_EMBED_URL, cancel_event=event)


class SlowNetwork(FakeNetwork):
    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def fetch_page(self, url, bypass_ssl=False, cookies=""):
        self.release.wait(timeout=5)
        return super().fetch_page(url, bypass_ssl, cookies)


def test_cancel_while_waiting_returns_promptly():
    network = SlowNetwork()
    event = threading.Event()
    timer = threading.Timer(0.2, event.set)
    timer.start()
    started = time.monotonic()
    try:
        with pytest.raises(ExtractionCancelled):
            ParallelPageRetriever(network).fetch_both(CANONICAL_EMBED_URL, cancel_event=event)
        assert time.monotonic() - started < 2
    finally:
        network.release.set()
        timer.cancel()

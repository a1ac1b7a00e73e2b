from __future__ import annotations

import threading

import pytest

from embedgrab.core.entities import FetchResult, ProbeResult, StreamFormat
from embedgrab.core.errors import ExtractionCancelled, FailureKind
from embedgrab.extractors.embed.hosts import GENERIC, UQLOAD

from conftest import (
    CANONICAL_EMBED_URL,
    CANONICAL_PAGE_URL,
    EMBED_URL,
    SCENARIO_A_BODY,
    FakeNetwork,
)

WRONG_IP = ProbeResult(status_code=403, body="error_wrong_ip")


def test_scenario_a_resolves_direct_url(make_extractor):
    network = FakeNetwork(pages={CANONICAL_EMBED_URL: SCENARIO_A_BODY})
    outcome = make_extractor(network).extract(EMBED_URL)

    assert outcome.ok
    assert outcome.attempts == 1
    assert outcome.info.url == "https://cdn.example/abc123/v.mp4"
    assert outcome.info.format is StreamFormat.MP4
    assert outcome.info.thumbnail == "https://cdn.example/abc123/poster.jpg"
    # Brand-only <title> is page chrome
    assert outcome.info.title is None


def test_fetch_uses_canonical_host_but_headers_keep_original(make_extractor):
    network = FakeNetwork(pages={CANONICAL_EMBED_URL: SCENARIO_A_BODY})
    info = make_extractor(network).extract(EMBED_URL).info

    fetched = {call[0] for call in network.fetch_calls}
    assert fetched == {CANONICAL_EMBED_URL, CANONICAL_PAGE_URL}
    assert info.headers["Referer"] == "https://uqload.to"
    assert info.headers["Origin"] == "https://uqload.to"
    # Validation ran against the host that served the page
    assert network.probe_calls[0][1]["Referer"] == "https://uqload.cx"


def test_returned_headers_are_complete_and_read_only(make_extractor):
    network = FakeNetwork(pages={
        CANONICAL_EMBED_URL: FetchResult(CANONICAL_EMBED_URL, body=SCENARIO_A_BODY, cookies="sid=1", status_code=200),
    })
    info = make_extractor(network).extract(EMBED_URL).info
    for name in ("User-Agent", "Referer", "Origin", "Accept", "Cookie", "Range", "Sec-Fetch-Dest", "Sec-Fetch-Mode"):
        assert name in info.headers
    assert info.headers["Cookie"] == "sid=1"
    assert info.headers["Range"] == "bytes=0-"
    with pytest.raises(TypeError):
        info.headers["Cookie"] = "x"


def test_hls_stream_gets_cors_fetch_headers(make_extractor):
    body = 'sources: [{file: "https://cdn.example/hls/master.m3u8"}]'
    network = FakeNetwork(pages={CANONICAL_EMBED_URL: body})
    info = make_extractor(network).extract(EMBED_URL).info
    assert info.format is StreamFormat.HLS
    assert info.headers["Sec-Fetch-Mode"] == "cors"
    assert info.headers["Sec-Fetch-Dest"] == "video"
    assert info.headers["Accept"].startswith("application/vnd.apple.mpegurl")


def test_scenario_b_exhausts_retries(make_extractor):
    network = FakeNetwork()
    outcome = make_extractor(network).extract(EMBED_URL)

    assert not outcome.ok
    assert outcome.kind is FailureKind.RETRIES_EXHAUSTED
    assert outcome.attempts == 3
    assert len(network.fetch_calls) == 6
    assert network.probe_calls == []


def test_scenario_c_content_absent_is_terminal(make_extractor):
    network = FakeNetwork(pages={CANONICAL_PAGE_URL: "<h2>File not found</h2>"})
    outcome = make_extractor(network).extract(EMBED_URL)

    assert outcome.kind is FailureKind.CONTENT_ABSENT
    assert outcome.attempts == 1
    assert len(network.fetch_calls) == 2


def test_deleted_marker_wins_over_candidate(make_extractor):
    body = SCENARIO_A_BODY + "<p>File was deleted</p>"
    network = FakeNetwork(pages={CANONICAL_EMBED_URL: body})
    outcome = make_extractor(network).extract(EMBED_URL)

    assert outcome.kind is FailureKind.CONTENT_ABSENT
    assert network.probe_calls == []


def test_non_embed_body_alone_is_enough(make_extractor):
    network = FakeNetwork(pages={CANONICAL_PAGE_URL: SCENARIO_A_BODY})
    outcome = make_extractor(network).extract(EMBED_URL)
    assert outcome.ok
    assert outcome.info.url == "https://cdn.example/abc123/v.mp4"


def test_non_embed_body_is_parsing_fallback(make_extractor):
    network = FakeNetwork(pages={
        CANONICAL_EMBED_URL: "<html>player loading</html>",
        CANONICAL_PAGE_URL: SCENARIO_A_BODY,
    })
    assert make_extractor(network).extract(EMBED_URL).info.url == "https://cdn.example/abc123/v.mp4"


def test_metadata_prefers_watch_page(make_extractor):
    network = FakeNetwork(pages={
        CANONICAL_EMBED_URL: SCENARIO_A_BODY + "<div>[1280x720, 01:40:00]</div>",
        CANONICAL_PAGE_URL: "<html><title>Real Movie</title></html>",
    })
    info = make_extractor(network).extract(EMBED_URL).info
    assert info.title == "Real Movie"
    assert info.quality == "1280x720"
    assert info.duration == "01:40:00"


def test_no_candidate_is_terminal(make_extractor):
    network = FakeNetwork(pages={CANONICAL_EMBED_URL: "<html><body>Nothing here</body></html>"})
    outcome = make_extractor(network).extract(EMBED_URL)
    assert outcome.kind is FailureKind.NO_CANDIDATE
    assert outcome.attempts == 1
    assert network.probe_calls == []


def test_wrong_ip_retries_with_ssl_bypass(make_extractor):
    network = FakeNetwork(
        pages={CANONICAL_EMBED_URL: SCENARIO_A_BODY},
        probes=[WRONG_IP, ProbeResult(status_code=206)],
    )
    outcome = make_extractor(network).extract(EMBED_URL)

    assert outcome.ok
    assert outcome.attempts == 2
    assert [call[2] for call in network.probe_calls] == [False, True]
    assert [call[1] for call in network.fetch_calls] == [False, False, True, True]


def test_generic_validation_failure_is_not_retried(make_extractor):
    network = FakeNetwork(
        pages={CANONICAL_EMBED_URL: SCENARIO_A_BODY},
        probes=[ProbeResult(status_code=404, body="Not Found")],
    )
    outcome = make_extractor(network).extract(EMBED_URL)

    assert outcome.kind is FailureKind.VALIDATION_FAILED
    assert outcome.failure.message == "HTTP 404: Not Found"
    assert outcome.attempts == 1
    assert len(network.probe_calls) == 1


def test_wrong_ip_every_time_exhausts(make_extractor):
    network = FakeNetwork(pages={CANONICAL_EMBED_URL: SCENARIO_A_BODY}, probes=[WRONG_IP])
    outcome = make_extractor(network).extract(EMBED_URL, max_retries=2)

    assert outcome.kind is FailureKind.RETRIES_EXHAUSTED
    assert outcome.attempts == 2
    assert "error_wrong_ip" in outcome.failure.message


def test_cookies_are_carried_into_retries(make_extractor):
    network = FakeNetwork(
        pages={
            CANONICAL_EMBED_URL: FetchResult(CANONICAL_EMBED_URL, body=SCENARIO_A_BODY, cookies="sid=1", status_code=200),
        },
        probes=[WRONG_IP, ProbeResult(status_code=200)],
    )
    make_extractor(network).extract(EMBED_URL)
    assert [call[2] for call in network.fetch_calls[:2]] == ["", ""]
    assert [call[2] for call in network.fetch_calls[2:]] == ["sid=1", "sid=1"]


def test_ssl_bypass_can_be_disabled(settings):
    from dataclasses import replace
    from embedgrab.extractors.embed.extractor import EmbedExtractor

    network = FakeNetwork(pages={CANONICAL_EMBED_URL: SCENARIO_A_BODY}, probes=[WRONG_IP])
    extractor = EmbedExtractor(network, replace(settings, ssl_bypass_from_attempt=0), profile=UQLOAD)
    extractor.extract(EMBED_URL)
    assert len(network.probe_calls) == 3
    assert not any(call[2] for call in network.probe_calls)


def test_invalid_retry_budget(make_extractor):
    with pytest.raises(ValueError):
        make_extractor(FakeNetwork()).extract(EMBED_URL, max_retries=0)


def test_cancelled_before_start(make_extractor):
    event = threading.Event()
    event.set()
    network = FakeNetwork(pages={CANONICAL_EMBED_URL: SCENARIO_A_BODY})
    with pytest.raises(ExtractionCancelled):
        make_extractor(network).extract(EMBED_URL, cancel_event=event)
    assert network.fetch_calls == []


def test_supports(make_extractor):
    uqload = make_extractor(FakeNetwork())
    generic = make_extractor(FakeNetwork(), profile=GENERIC)
    assert uqload.supports("https://uqload.to/embed-x.html")
    assert uqload.supports("https://www.uqload.cx/embed-x.html")
    assert not uqload.supports("https://vidhost.example/embed/x")
    assert generic.supports("https://vidhost.example/embed/x")
    assert not generic.supports("ftp://vidhost.example/x")


def test_unparseable_original_url_falls_back_to_default_referer():
    from embedgrab.extractors.embed.headers import referer_from_url
    assert referer_from_url("not a url", "https://uqload.cx") == "https://uqload.cx"
    assert referer_from_url("https://[broken", "https://uqload.cx") == "https://uqload.cx"


def test_media_host_timeout_is_terminal(make_extractor):
    network = FakeNetwork(
        pages={CANONICAL_EMBED_URL: SCENARIO_A_BODY},
        probes=[ProbeResult(error="Read timed out")],
    )
    outcome = make_extractor(network).extract(EMBED_URL)

    assert outcome.kind is FailureKind.VALIDATION_FAILED
    assert outcome.attempts == 1
    assert "Read timed out" in outcome.failure.message
    assert len(network.probe_calls) == 1


def test_malformed_url_ends_as_typed_failure(make_extractor):
    network = FakeNetwork()
    outcome = make_extractor(network).extract("https://[broken/embed-x", max_retries=2)

    assert outcome.kind is FailureKind.RETRIES_EXHAUSTED
    assert outcome.attempts == 2
    assert network.fetch_calls[0][0] in ("https://[broken/embed-x", "https://[broken/x")

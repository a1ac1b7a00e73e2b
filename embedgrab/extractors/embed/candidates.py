"""
Candidate media URL extraction from embed page HTML/JS.

Each strategy is a plain function `text -> Optional[CandidateStream]`. They
are tried in a fixed order and the first one that finds something wins;
results are never merged or scored.
"""

import logging
import re
from functools import partial
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from embedgrab.core.entities import CandidateStream, StreamFormat
from embedgrab.extractors.embed.hosts import GENERIC, HostProfile

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Optional[CandidateStream]]

ABSENT_MARKERS = ("File was deleted", "File not found")

_MEDIA_EXT = r"\.(?:mp4|m3u8|mpd)"
_QUERY = r"(?:\?[^\"'\s<>]*)?"

# (pattern, fixed format or AUTO). Group 1 is the URL when present, else the whole match.
STRUCTURED_PATTERNS: List[Tuple[re.Pattern, StreamFormat]] = [
    (re.compile(r"sources\s*:\s*\[\s*\{[^}]*file\s*:\s*[\"']([^\"']+)[\"']"), StreamFormat.AUTO),
    (re.compile(r"file\s*:\s*[\"']([^\"']+" + _MEDIA_EXT + r"(?:\?[^\"']*)?)[\"']"), StreamFormat.AUTO),
    (re.compile(r"src\s*:\s*[\"']([^\"']+" + _MEDIA_EXT + r"(?:\?[^\"']*)?)[\"']"), StreamFormat.AUTO),
    (re.compile(r"url\s*:\s*[\"']([^\"']+" + _MEDIA_EXT + r"(?:\?[^\"']*)?)[\"']"), StreamFormat.AUTO),
    (re.compile(r"https?://[^\"'\s<>]+\.m3u8" + _QUERY), StreamFormat.HLS),
    (re.compile(r"https?://[^\"'\s<>]+\.mpd" + _QUERY), StreamFormat.DASH),
    (re.compile(r"https?://[^\"'\s<>]+\.mp4" + _QUERY), StreamFormat.MP4),
    (re.compile(r"\"(https?://[^\"]+" + _MEDIA_EXT + r")\""), StreamFormat.AUTO),
    (re.compile(r"src\s*=\s*[\"'](https?://[^\"']+" + _MEDIA_EXT + r")[\"']"), StreamFormat.AUTO),
]

JS_VARIABLE_PATTERNS = [
    re.compile(r"var\s+\w+\s*=\s*[\"'](https?://[^\"']+" + _MEDIA_EXT + r"(?:\?[^\"']*)?)[\"']"),
    re.compile(r"\w+\s*=\s*[\"'](https?://[^\"']+" + _MEDIA_EXT + r"(?:\?[^\"']*)?)[\"']"),
    re.compile(r"url\s*:\s*[\"'](https?://[^\"']+)[\"']"),
    re.compile(r"source\s*:\s*[\"'](https?://[^\"']+)[\"']"),
]

BRUTE_FORCE_MIN_LEN = 20
BRUTE_FORCE_MAX_LEN = 500


def infer_format(url: str) -> StreamFormat:
    """.m3u8 -> hls, .mpd -> dash, anything else -> mp4."""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        path = ""
    for suffix, fmt in ((".m3u8", StreamFormat.HLS), (".mpd", StreamFormat.DASH), (".mp4", StreamFormat.MP4)):
        if path.endswith(suffix):
            return fmt
    lowered = url.lower()
    if ".m3u8" in lowered:
        return StreamFormat.HLS
    if ".mpd" in lowered:
        return StreamFormat.DASH
    return StreamFormat.MP4


def find_absent_marker(*bodies: Optional[str]) -> Optional[str]:
    """The first content-absent marker found in any body (case-sensitive)."""
    for body in bodies:
        if not body:
            continue
        for marker in ABSENT_MARKERS:
            if marker in body:
                return marker
    return None


def _complete_url(raw: str, base_url: Optional[str]) -> Optional[str]:
    url = raw.strip().replace("&amp;", "&").replace("\\/", "/")
    if url.startswith("//"):
        return "https:" + url
    if url.startswith(("http://", "https://")):
        return url
    if base_url:
        return urljoin(base_url, url)
    return None


def _candidate(raw: str, fmt: StreamFormat, strategy: str, base_url: Optional[str]) -> Optional[CandidateStream]:
    url = _complete_url(raw, base_url)
    if not url:
        return None
    if fmt is StreamFormat.AUTO:
        fmt = infer_format(url)
    return CandidateStream(url=url, format=fmt, strategy=strategy)


def match_structured(text: str, profile: HostProfile = GENERIC, base_url: Optional[str] = None) -> Optional[CandidateStream]:
    """Common player-config idioms, then raw manifest/file URLs."""
    for pattern, fmt in STRUCTURED_PATTERNS:
        for match in pattern.finditer(text):
            raw = match.group(1) if pattern.groups else match.group(0)
            candidate = _candidate(raw, fmt, "structured", base_url)
            if candidate:
                return candidate
    return None


def match_host_legacy(text: str, profile: HostProfile = GENERIC, base_url: Optional[str] = None) -> Optional[CandidateStream]:
    if profile.legacy_pattern is None:
        return None
    if "file was deleted" in text.lower():
        logger.info("[PARSE] %s page says the file was deleted", profile.name)
        return None
    match = profile.legacy_pattern.search(text)
    if match:
        return _candidate(match.group(0), StreamFormat.MP4, "host_legacy", base_url)
    return None


def match_js_variable(text: str, profile: HostProfile = GENERIC, base_url: Optional[str] = None) -> Optional[CandidateStream]:
    for pattern in JS_VARIABLE_PATTERNS:
        match = pattern.search(text)
        if match:
            candidate = _candidate(match.group(1), StreamFormat.AUTO, "js_variable", base_url)
            if candidate:
                return candidate
    return None


def _brute_force_patterns(profile: HostProfile) -> List[re.Pattern]:
    patterns = [
        re.compile(r"(https?://[^\s\"'<>]+\.(?:mp4|m3u8|mpd|avi|mkv|webm)(?:\?[^\s\"'<>]*)?)"),
        re.compile(r"(https?://[^\s\"'<>]*(?:video|stream|media|file)[^\s\"'<>]*)"),
    ]
    if profile.brand:
        patterns.append(re.compile(r"(https?://[^\s\"'<>]*" + re.escape(profile.brand) + r"[^\s\"'<>]*" + _MEDIA_EXT + ")"))
    patterns.append(re.compile(r"(https?://[^\s\"'<>]*(?:cdn|storage|media)[^\s\"'<>]*" + _MEDIA_EXT + ")"))
    return patterns


def is_plausible_media_url(url: str, allowlist: Iterable[str]) -> bool:
    if not (BRUTE_FORCE_MIN_LEN < len(url) < BRUTE_FORCE_MAX_LEN):
        return False
    return any(token in url for token in allowlist)


def match_brute_force(text: str, profile: HostProfile = GENERIC, base_url: Optional[str] = None) -> Optional[CandidateStream]:
    """Last resort: any video-looking URL that passes the plausibility filter."""
    allowlist = profile.brute_force_allowlist
    for pattern in _brute_force_patterns(profile):
        for match in pattern.finditer(text):
            url = match.group(1)
            logger.debug("[PARSE] Brute-force candidate: %s", url)
            if is_plausible_media_url(url, allowlist):
                return _candidate(url, StreamFormat.AUTO, "brute_force", base_url)
    return None


CASCADE = (match_structured, match_host_legacy, match_js_variable, match_brute_force)


def build_cascade(profile: HostProfile = GENERIC, base_url: Optional[str] = None) -> List[Strategy]:
    """The strategies bound to a host profile, in priority order."""
    return [partial(strategy, profile=profile, base_url=base_url) for strategy in CASCADE]


def parse_candidate(text: Optional[str], profile: HostProfile = GENERIC, base_url: Optional[str] = None) -> Optional[CandidateStream]:
    if not text:
        return None
    for strategy in build_cascade(profile, base_url):
        candidate = strategy(text)
        if candidate:
            logger.debug("[PARSE] %s found %s (%s)", candidate.strategy, candidate.url, candidate.format.value)
            return candidate
    return None


MEDIA_KEYWORDS = ("sources", "file", "video", "mp4", "m3u8", "mpd", "url", "src",
                  "stream", "player", "jwplayer", "videojs")

_SCRIPT_RE = re.compile(r"<script[^>]*>(.*?)</script>", re.DOTALL | re.IGNORECASE)
_ANY_URL_RE = re.compile(r"https?://[^\s\"'<>]+")


def describe_page(text: str) -> List[str]:
    """
    Human-readable hints about where a stream URL might hide in a page.

    Logged when every strategy came back empty so new player layouts can be
    added to the cascade.
    """
    lines = [f"content length: {len(text)}"]
    for index, script in enumerate(_SCRIPT_RE.findall(text)):
        lowered = script.lower()
        if any(k in lowered for k in ("mp4", "m3u8", "sources", "file")):
            lines.append(f"script {index}: {script.strip()[:200]}")

    lowered_text = text.lower()
    for keyword in MEDIA_KEYWORDS:
        count = lowered_text.count(keyword)
        if count:
            pos = lowered_text.index(keyword)
            context = text[max(0, pos - 100):pos + 200].replace("\n", " ")
            lines.append(f"'{keyword}' x{count}: ...{context}...")

    for url in _ANY_URL_RE.findall(text)[:10]:
        lines.append(f"url: {url}")
    return lines

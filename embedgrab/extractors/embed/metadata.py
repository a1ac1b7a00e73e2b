"""Best-effort title/thumbnail/quality/duration scraping from embed pages."""

import re
from typing import Optional

from bs4 import BeautifulSoup

from embedgrab.core.entities import PageMetadata

# Elements tried in order for the page title
TITLE_TAGS = ("title", "h1")

# Player config keys, for pages that only set the title from JS
JS_TITLE_PATTERNS = [
    re.compile(r"title\s*:\s*[\"'](.*?)[\"']"),
    re.compile(r"name\s*:\s*[\"'](.*?)[\"']"),
]

_IMAGE_EXT = r"\.(?:jpg|jpeg|png|webp)"
THUMBNAIL_PATTERNS = [
    re.compile(r"poster\s*:\s*[\"'](https?://[^\"']+" + _IMAGE_EXT + r")[\"']"),
    re.compile(r"thumbnail\s*:\s*[\"'](https?://[^\"']+" + _IMAGE_EXT + r")[\"']"),
    re.compile(r"image\s*:\s*[\"'](https?://[^\"']+" + _IMAGE_EXT + r")[\"']"),
    re.compile(r"(https?://[^\"'\s]+" + _IMAGE_EXT + r")"),
]

QUALITY_PATTERNS = [
    re.compile(r"\[(\d+x\d+)"),
    re.compile(r"(\d+p)"),
    re.compile(r"quality\s*:\s*[\"']([^\"']+)[\"']"),
]

DURATION_PATTERNS = [
    re.compile(r"duration\s*:\s*[\"']([^\"']+)[\"']"),
    re.compile(r"\[\d+x\d+,\s*((?:\d+:)*\d+)\]"),
    re.compile(r"(\d+:\d+:\d+)"),
    re.compile(r"(\d+:\d+)"),
]

_SPACE_RE = re.compile(r"\s+")


def _first_group(patterns, text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def clean_title(raw: str) -> str:
    return _SPACE_RE.sub(" ", raw).strip()


def _accept_title(raw: str, brand: Optional[str]) -> Optional[str]:
    title = clean_title(raw)
    # Host page chrome ("Uqload - Watch ...") is not the video title
    if title and not (brand and brand.lower() in title.lower()):
        return title
    return None


def parse_title(text: str, brand: Optional[str] = None, soup: Optional[BeautifulSoup] = None) -> Optional[str]:
    if soup is None:
        soup = BeautifulSoup(text, "html.parser")
    for tag in TITLE_TAGS:
        elem = soup.find(tag)
        if elem:
            title = _accept_title(elem.get_text(" ", strip=True), brand)
            if title:
                return title
    for pattern in JS_TITLE_PATTERNS:
        match = pattern.search(text)
        if match:
            title = _accept_title(match.group(1), brand)
            if title:
                return title
    return None


def parse_thumbnail(text: str) -> Optional[str]:
    for pattern in THUMBNAIL_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).startswith("http"):
            return match.group(1)
    return None


def parse_quality(text: str) -> Optional[str]:
    return _first_group(QUALITY_PATTERNS, text)


def parse_duration(text: str) -> Optional[str]:
    return _first_group(DURATION_PATTERNS, text)


def extract_metadata(text: Optional[str], brand: Optional[str] = None) -> PageMetadata:
    """All fields independently optional. Never raises."""
    if not text:
        return PageMetadata()
    soup = BeautifulSoup(text, "html.parser")
    return PageMetadata(
        title=parse_title(text, brand, soup=soup),
        thumbnail=parse_thumbnail(text),
        quality=parse_quality(text),
        duration=parse_duration(text),
    )


def merge_metadata(preferred: PageMetadata, fallback: PageMetadata) -> PageMetadata:
    """Fields of `preferred`, gaps filled from `fallback`."""
    return PageMetadata(
        title=preferred.title or fallback.title,
        thumbnail=preferred.thumbnail or fallback.thumbnail,
        quality=preferred.quality or fallback.quality,
        duration=preferred.duration or fallback.duration,
    )

import gzip
import logging
import zlib
from typing import Mapping, Optional

from embedgrab.core.config import ExtractorSettings
from embedgrab.core.entities import FetchResult, ProbeResult
from embedgrab.core.interfaces import NetworkAdapter
from embedgrab.extractors.embed.headers import referer_from_url
try:
    from curl_cffi import requests
    HAVE_CURL_CFFI = True
except ImportError:
    # Fallback for environments like Termux where curl_cffi wheels are unavailable
    import requests
    HAVE_CURL_CFFI = False

logger = logging.getLogger(__name__)

PAGE_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"


def decode_body(content: bytes, content_encoding: Optional[str]) -> str:
    """
    Decompress per Content-Encoding when the bytes are still compressed,
    then decode as UTF-8. The HTTP client usually inflates transparently,
    so already-plain bytes pass through.
    """
    encoding = (content_encoding or "").strip().lower()
    if encoding == "gzip" and content[:2] == b"\x1f\x8b":
        content = gzip.decompress(content)
    elif encoding == "deflate":
        try:
            content = zlib.decompress(content)
        except zlib.error:
            try:
                content = zlib.decompress(content, -zlib.MAX_WBITS)
            except zlib.error:
                pass
    return content.decode("utf-8", errors="replace")


def cookie_string(cookies) -> str:
    """`name=value` pairs of a cookie jar joined with '; '."""
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


class HttpNetworkAdapter(NetworkAdapter):
    """
    Page fetching and media probing over curl_cffi (browser impersonation)
    or requests.

    SSL verification is switched off per call via `bypass_ssl`, which turns
    off both certificate and hostname checks for that single request. It is
    only ever requested on escalated retries against hosts with broken
    certificates.
    """

    def __init__(self, settings: Optional[ExtractorSettings] = None):
        self.settings = settings or ExtractorSettings()

    @property
    def _timeout(self):
        t = self.settings.timeout_seconds
        return (t, t)

    def _session(self):
        session_args = {"impersonate": self.settings.impersonate} if HAVE_CURL_CFFI else {}
        return requests.Session(**session_args)

    def _page_headers(self, url: str, cookies: str) -> dict:
        referer = referer_from_url(url, default=url)
        headers = {
            "User-Agent": self.settings.user_agent,
            "Referer": referer,
            "Origin": referer,
            "Accept": PAGE_ACCEPT,
            "Accept-Language": "en-US,en;q=0.5",
            "Accept-Encoding": "identity",
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "same-origin",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        if cookies:
            headers["Cookie"] = cookies
        return headers

    def fetch_page(self, url: str, bypass_ssl: bool = False, cookies: str = "") -> FetchResult:
        try:
            with self._session() as s:
                resp = s.get(
                    url,
                    headers=self._page_headers(url, cookies),
                    timeout=self._timeout,
                    verify=not bypass_ssl,
                    allow_redirects=True,
                )
                if resp.status_code != 200:
                    logger.warning("[FETCH] %s -> HTTP %s", url, resp.status_code)
                    return FetchResult(url=url, status_code=resp.status_code)

                body = decode_body(resp.content, resp.headers.get("Content-Encoding"))
                captured = cookie_string(s.cookies)
                logger.debug(
                    "[FETCH] %s: %d chars, type=%s, encoding=%s",
                    url, len(body), resp.headers.get("Content-Type"), resp.headers.get("Content-Encoding"),
                )
                return FetchResult(url=url, body=body, cookies=captured, status_code=resp.status_code)
        except Exception as e:
            # Fail-soft: the sibling fetch of the same attempt may still succeed
            logger.warning("[FETCH] %s failed: %s", url, e)
            return FetchResult(url=url)

    def probe(self, url: str, headers: Mapping[str, str], bypass_ssl: bool = False) -> ProbeResult:
        try:
            with self._session() as s:
                resp = s.head(
                    url,
                    headers=dict(headers),
                    timeout=self._timeout,
                    verify=not bypass_ssl,
                    allow_redirects=True,
                )
                body = "" if resp.status_code in (200, 206) else (resp.text or "")
                return ProbeResult(status_code=resp.status_code, body=body)
        except Exception as e:
            logger.warning("[VALIDATE] HEAD %s failed: %s", url, e)
            return ProbeResult(error=str(e) or type(e).__name__)

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, FIRST_EXCEPTION, wait
from typing import Optional

from embedgrab.core.entities import FetchResult, PageBundle
from embedgrab.core.errors import ExtractionCancelled
from embedgrab.core.interfaces import NetworkAdapter
from embedgrab.sources.resolver import derive_non_embed_url

logger = logging.getLogger(__name__)


class ParallelPageRetriever:
    """
    Fetches an embed page and its non-embed variant at the same time.

    Both fetches are joined before anything is returned. The adapter is
    fail-soft, so one failed branch only leaves its body empty.
    """

    POLL_INTERVAL = 0.1

    def __init__(self, network: NetworkAdapter):
        self.network = network

    def fetch_both(self, embed_url: str, bypass_ssl: bool = False, cookies: str = "",
                   cancel_event: Optional[threading.Event] = None) -> PageBundle:
        non_embed_url = derive_non_embed_url(embed_url)

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="embedgrab-fetch")
        try:
            embed_future = executor.submit(self.network.fetch_page, embed_url, bypass_ssl, cookies)
            non_embed_future = executor.submit(self.network.fetch_page, non_embed_url, bypass_ssl, cookies)
            pending = {embed_future, non_embed_future}
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    raise ExtractionCancelled("Extraction cancelled while fetching pages")
                _, pending = wait(pending, timeout=self.POLL_INTERVAL, return_when=FIRST_EXCEPTION)

            embed_result = self._result_of(embed_future, embed_url)
            non_embed_result = self._result_of(non_embed_future, non_embed_url)
        finally:
            # Never block on a straggler: on cancel it is left to hit its own timeout
            executor.shutdown(wait=False, cancel_futures=True)

        merged_cookies = embed_result.cookies or non_embed_result.cookies
        logger.debug(
            "[FETCH] embed=%s non-embed=%s cookies=%s",
            embed_result.status_code, non_embed_result.status_code, bool(merged_cookies),
        )
        return PageBundle(
            embed_body=embed_result.body,
            non_embed_body=non_embed_result.body,
            cookies=merged_cookies,
        )

    @staticmethod
    def _result_of(future, url: str) -> FetchResult:
        error = future.exception()
        if error is not None:
            # Adapters are fail-soft; a raising branch counts as an empty page
            logger.error("[FETCH] Fetch of %s raised %r", url, error)
            return FetchResult(url=url)
        return future.result()

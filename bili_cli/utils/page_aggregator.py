"""
Concurrent page fetching with deterministic reassembly.
Fetches every page of a listing in parallel and joins them in page order.
"""

import asyncio
import logging
import math
from contextlib import nullcontext
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


def page_count(total_items: int, page_size: int) -> int:
    """Number of pages needed to hold `total_items` (0 for an empty listing)."""
    if total_items <= 0:
        return 0
    return math.ceil(total_items / page_size)


class PageAggregator(Generic[T]):
    """
    Fetches pages 1..N concurrently, one task per page.

    A page whose fetch raises is logged and contributes no items, but the
    remaining pages keep their positions. Results are sorted by page number
    before being concatenated, so completion order never affects the output.
    """

    def __init__(
        self,
        fetch_page: Callable[[int], Awaitable[List[T]]],
        max_concurrent: Optional[int] = None,
        label: str = "listing",
    ):
        """
        Args:
            fetch_page: Coroutine function returning the items of a 1-based page.
            max_concurrent: Maximum number of page requests in flight. None
            starts every page at once.
            label: Description of the listing, used in log messages.
        """
        self._fetch_page = fetch_page
        self._semaphore = (
            asyncio.Semaphore(max_concurrent) if max_concurrent else nullcontext()
        )
        self._label = label

    async def _fetch_single(self, page: int) -> tuple[int, List[T]]:
        async with self._semaphore:
            try:
                return page, await self._fetch_page(page)
            except Exception as e:
                log.warning(f"Failed to fetch page {page} of {self._label}: {e}")
                return page, []

    async def fetch_all(self, total_pages: int) -> List[T]:
        if total_pages <= 0:
            return []

        log.debug(f"Fetching {total_pages} pages of {self._label} concurrently...")
        tasks = [self._fetch_single(page) for page in range(1, total_pages + 1)]
        results = await asyncio.gather(*tasks)

        items: List[T] = []
        for _, page_items in sorted(results, key=lambda result: result[0]):
            items.extend(page_items)
        return items

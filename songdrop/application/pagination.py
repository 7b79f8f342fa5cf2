import contextvars
import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Dict, List, TypeVar

from songdrop.domain.entities import PlaylistPage


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_WORKERS = 8


class PaginatedFetcher:
    """Retrieves a complete offset-paginated collection.

    The first page is fetched on the calling thread to learn the total and the
    page size. Every remaining offset is then requested concurrently on a
    bounded thread pool and the pages are reassembled by ascending offset, so
    the result never depends on network completion order.

    Nothing is cached: each call reflects the remote state at that moment.
    """

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS):
        """Initialize the fetcher.

        Args:
            max_workers: Ceiling on in-flight page requests
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers

    def remaining_offsets(self, first_page: PlaylistPage) -> List[int]:
        """Compute the offsets still to be fetched after the first page.

        Args:
            first_page: Page returned for offset 0

        Returns:
            Ascending list of offsets covering the rest of the collection
        """
        page_size = first_page.limit or len(first_page.items)
        if page_size <= 0:
            return []
        start = first_page.offset + page_size
        return list(range(start, first_page.total, page_size))

    def fetch_all(self,
                  first_page: Callable[[], PlaylistPage[T]],
                  page: Callable[[int], PlaylistPage[T]]) -> List[T]:
        """Fetch every page and return the items in collection order.

        Args:
            first_page: Returns the page at offset 0
            page: Returns the page at an arbitrary offset

        Returns:
            All items, ordered by page offset

        Raises:
            Whatever a page fetch raised. The first failure aborts the whole
            operation and pages that already completed are discarded.
        """
        head = first_page()
        offsets = self.remaining_offsets(head)

        if not offsets:
            logger.debug(f"Fetched single page with {len(head.items)} items")
            return list(head.items)

        logger.debug(f"Fetching {len(offsets)} more pages (total={head.total}, workers={self.max_workers})")

        pages: Dict[int, PlaylistPage[T]] = {head.offset: head}
        workers = min(self.max_workers, len(offsets))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="songdrop-page")
        try:
            # Workers see the caller's correlation values; one copy per task
            context = contextvars.copy_context()
            future_to_offset = {executor.submit(context.copy().run, page, offset): offset for offset in offsets}
            done, pending = wait(future_to_offset, return_when=FIRST_EXCEPTION)

            for future in done:
                error = future.exception()
                if error is not None:
                    offset = future_to_offset[future]
                    logger.error(f"Page fetch at offset {offset} failed: {error}")
                    for other in pending:
                        other.cancel()
                    raise error

            for future in done:
                pages[future_to_offset[future]] = future.result()
        finally:
            executor.shutdown(wait=True)

        items: List[T] = []
        for offset in sorted(pages):
            items.extend(pages[offset].items)

        logger.debug(f"Reassembled {len(items)} items from {len(pages)} pages")
        return items

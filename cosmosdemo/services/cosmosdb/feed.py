"""
Paginated read feeds.

A ``FeedIterator`` walks a service feed one page at a time, following the
continuation token the service hands back with each page.
"""

from typing import AsyncIterator, Awaitable, Callable, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")

# Fetches the page that starts at the given continuation token and returns it
# with the token of the following page (None after the last page).
PageFetcher = Callable[[Optional[str]], Awaitable[Tuple[List[T], Optional[str]]]]


class FeedExhaustedError(RuntimeError):
    """Raised when reading past the last page of a feed."""


class FeedIterator(Generic[T]):
    """Forward-only iterator over the pages of a feed.

    Usage::

        feed = client.list_databases()
        while feed.has_more_results:
            for database in await feed.read_next():
                ...

    Every ``list_*`` call returns a fresh iterator. Once drained, an iterator
    stays exhausted.
    """

    def __init__(self, fetch_page: PageFetcher):
        self._fetch_page = fetch_page
        self._continuation: Optional[str] = None
        self._exhausted = False
        self.pages_read = 0

    @property
    def has_more_results(self) -> bool:
        """Whether another ``read_next`` call will reach the service."""
        return not self._exhausted

    @property
    def continuation_token(self) -> Optional[str]:
        return self._continuation

    async def read_next(self) -> List[T]:
        """Fetch the next page.

        Returns:
            Items of the page, possibly empty

        Raises:
            FeedExhaustedError: If the last page was already read
        """
        if self._exhausted:
            raise FeedExhaustedError("The feed has no more results")

        items, continuation = await self._fetch_page(self._continuation)
        self.pages_read += 1
        self._continuation = continuation
        self._exhausted = continuation is None
        return items

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iter_items()

    async def _iter_items(self) -> AsyncIterator[T]:
        while self.has_more_results:
            for item in await self.read_next():
                yield item

"""
Incremental "load more" feed over a sliceable content query.

A page shorter than `page_size` marks the end of the list; after that the
feed never asks for another page.
"""
from typing import Any, Callable, Iterator, List

FetchPage = Callable[[int, int], List[Any]]  # (start, end) -> items


class LoadMoreFeed:
    def __init__(self, fetch_page: FetchPage, page_size: int = 10):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.fetch_page = fetch_page
        self.page_size = page_size
        self.items: List[Any] = []
        self.has_more = True
        self.is_fetching = False

    def load_more(self) -> List[Any]:
        """Fetch the next page; returns only the newly loaded items"""
        if self.is_fetching or not self.has_more:
            return []
        self.is_fetching = True
        try:
            start = len(self.items)
            page = list(self.fetch_page(start, start + self.page_size) or [])
        finally:
            self.is_fetching = False
        if len(page) < self.page_size:
            self.has_more = False
        self.items.extend(page)
        return page

    def iter_all(self) -> Iterator[Any]:
        yield from self.items
        while self.has_more:
            page = self.load_more()
            yield from page


def page_window(start: int, limit: int, max_limit: int = 50) -> tuple:
    """Clamp a requested (start, limit) into a valid slice"""
    start = max(0, start)
    limit = min(max(1, limit), max_limit)
    return start, start + limit

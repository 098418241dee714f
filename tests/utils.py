"""Test utilities for the extraction tests."""

import socket
from contextlib import closing

from gleaner.data_types import FetchResult


def find_free_port() -> int:
    """Find a free port on localhost.

    Returns:
        An available port number.
    """
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class FakeFetcher:
    """In-memory transport serving fixed pages.

    Unknown URLs answer 404. Every requested URL is recorded in
    ``requested`` so tests can check what was (not) fetched.
    """

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        statuses: dict[str, int] | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.pages = dict(pages or {})
        self.statuses = dict(statuses or {})
        self.errors = dict(errors or {})
        self.requested: list[str] = []

    def fetch(self, url: str) -> FetchResult:
        self.requested.append(url)
        if url in self.errors:
            raise self.errors[url]
        if url in self.pages:
            return FetchResult(
                status_code=self.statuses.get(url, 200),
                body=self.pages[url],
                url=url,
            )
        return FetchResult(status_code=404, body="", url=url)

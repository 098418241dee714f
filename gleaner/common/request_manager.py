"""Request manager fetching sub-documents over HTTP.

The field processor only needs ``fetch(url) -> FetchResult``. Status codes
are reported, never raised: deciding what a 404 means is the caller's job.
Transport failures (timeouts, refused connections) raise TransientException
subclasses.
"""

from __future__ import annotations

import logging
import ssl
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from gleaner.common.exceptions import (
    RequestFailedException,
    RequestTimeoutException,
)
from gleaner.data_types import FetchResult

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_10_3) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/44.0.2403.89 Safari/537.36"
)


class Fetcher(Protocol):
    """Transport collaborator used by ``FieldsParser``."""

    def fetch(self, url: str) -> FetchResult: ...


class SyncRequestManager:
    """Manages HTTP requests for the field processor.

    This class encapsulates:

    - httpx.Client lifecycle
    - URL fetching
    - Response transformation into FetchResult

    Example::

        with SyncRequestManager(timeout=30.0) as manager:
            page = manager.fetch("https://example.com/")
            if page.ok:
                document = parse_document(page.body, page.url)
    """

    def __init__(
        self,
        ssl_context: ssl.SSLContext | None = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
        verify: bool = True,
    ) -> None:
        """Initialize the request manager.

        Args:
            ssl_context: Optional SSL context for HTTPS connections. Use this
                for servers requiring specific cipher suites.
            timeout: Request timeout in seconds. None means no timeout (default).
            headers: Extra headers merged over the defaults.
            verify: Whether to verify TLS certificates when no ssl_context
                is given.
        """
        self.timeout = timeout

        merged_headers = {"User-Agent": DEFAULT_USER_AGENT}
        if headers:
            merged_headers.update(headers)

        self._client = httpx.Client(
            verify=ssl_context if ssl_context else verify,
            timeout=timeout,
            headers=merged_headers,
            follow_redirects=True,
        )

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> SyncRequestManager:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit - closes the client."""
        self.close()

    def fetch(self, url: str) -> FetchResult:
        """Fetch ``url`` with a GET request.

        Args:
            url: Absolute URL to fetch.

        Returns:
            FetchResult with status code, decoded body and final URL.

        Raises:
            RequestTimeoutException: If the request times out.
            RequestFailedException: If no response could be obtained, or
                the URL is malformed.
        """
        try:
            http_response = self._client.get(url)
        except httpx.TimeoutException as e:
            raise RequestTimeoutException(
                url=url, timeout_seconds=self.timeout
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RequestFailedException(url=url, reason=str(e)) from e

        logger.debug("GET %s -> %s", url, http_response.status_code)

        return FetchResult(
            status_code=http_response.status_code,
            body=http_response.text,
            url=str(http_response.url),
        )

"""Exception types for extraction errors.

Ordinary extraction problems (a selector that matches nothing, a sub-page
that answers 404) are not exceptions: handlers log them and return the
failure marker. The exceptions here cover what a field map author or the
transport layer has to fix or retry.
"""

from typing import Any


class ScraperAssumptionException(Exception):
    """Base class for violated assumptions about a document or a field map.

    Subclasses should provide specific context about what assumption was
    violated.
    """

    def __init__(
        self,
        message: str,
        request_url: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the assumption violation.
            request_url: The URL of the document being processed, if any.
            context: Optional dict of additional context (selector, field...).
        """
        self.message = message
        self.request_url = request_url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        parts = [self.message]
        parts.append(f"URL: {self.request_url}")

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


class SelectorException(ScraperAssumptionException):
    """Raised when an XPath expression cannot be evaluated.

    Attributes:
        selector: The offending XPath expression.
    """

    def __init__(self, selector: str, error: str, request_url: str) -> None:
        self.selector = selector
        super().__init__(
            f"Invalid XPath expression: {selector}",
            request_url,
            {"selector": selector, "error": error},
        )


class DescriptorException(ScraperAssumptionException):
    """Raised when a field map entry is not a valid field descriptor.

    Attributes:
        field_name: Name of the field in its map.
        errors: Pydantic validation errors.
    """

    def __init__(self, field_name: str, errors: list[Any]) -> None:
        self.field_name = field_name
        self.errors = errors

        error_summary = ", ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in errors
        )
        super().__init__(
            f"Invalid descriptor for field '{field_name}': {error_summary}",
            request_url="",
            context={"field": field_name, "error_count": len(errors)},
        )


# =============================================================================
# Transient Exceptions
# =============================================================================


class TransientException(Exception):
    """Base class for transport errors that might resolve on retry.

    The core never retries; callers decide whether to run the extraction
    again.
    """

    pass


class RequestTimeoutException(TransientException):
    """Raised when a fetch times out.

    Attributes:
        url: The URL that timed out.
        timeout_seconds: The timeout duration in seconds.
        message: Human-readable error message.
    """

    def __init__(self, url: str, timeout_seconds: float | None) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.message = f"Request to {url} timed out after {timeout_seconds}s"
        super().__init__(self.message)


class RequestFailedException(TransientException):
    """Raised when a fetch fails before any response arrives.

    Attributes:
        url: The URL that could not be fetched.
        reason: Description of the underlying transport error.
        message: Human-readable error message.
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        self.message = f"Request to {url} failed: {reason}"
        super().__init__(self.message)

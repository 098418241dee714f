"""Document query protocols used by the field processor.

The field processor never talks to lxml directly. Handlers query "the
current document" through the Document protocol and hand the resulting
PageElement nodes to the filter chain. The standard implementation lives in
``gleaner.common.lxml_page_element``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class PageElement(Protocol):
    """Protocol for a single document node.

    The type classifier recognizes nodes through this protocol, so any
    object implementing these methods can flow through the filter chain as
    a ``dom`` value.
    """

    def text_content(self) -> str:
        """Extract the visible text content.

        Returns:
            Visible text content of the element and its descendants.
        """
        ...

    def get_attribute(self, name: str) -> str | None:
        """Extract an attribute value.

        Args:
            name: Name of the attribute.

        Returns:
            Value of the attribute, or None if it doesn't exist.
        """
        ...

    def inner_html(self) -> str:
        """Get the inner HTML content.

        Returns:
            Inner HTML content of the element as a string.
        """
        ...

    def tag_name(self) -> str:
        """Get the element's tag name.

        Returns:
            Tag name as a lowercase string (e.g., "div", "a", "h1").
        """
        ...

    def edit_html(self, editor: Callable[[str], str]) -> PageElement:
        """Re-parse the element's edited inner HTML.

        Args:
            editor: Receives the inner HTML and returns the replacement markup.

        Returns:
            A detached element holding the parsed replacement markup.
        """
        ...


class NodeSequence(Protocol):
    """Protocol for the ordered node list returned by ``Document.query``."""

    def __len__(self) -> int: ...

    def __getitem__(self, index: int) -> PageElement: ...


class Document(Protocol):
    """Protocol for a parsed document that can be queried by XPath."""

    url: str

    def query(self, xpath: str) -> NodeSequence:
        """Return every element matching ``xpath``, in document order.

        Args:
            xpath: XPath expression to evaluate against the document root.

        Returns:
            A node list, empty when nothing matches.

        Raises:
            SelectorException: If the expression is not valid XPath.
        """
        ...

    def query_first(self, xpath: str) -> PageElement | None:
        """Return the first element matching ``xpath``, or None."""
        ...


def is_node(value: object) -> bool:
    """True if ``value`` is a document node (implements PageElement)."""
    return not isinstance(value, (str, bytes)) and isinstance(
        value, PageElement
    )


def is_node_sequence(value: object) -> bool:
    """True for a plain ordered collection whose items are all nodes."""
    return (
        isinstance(value, Sequence)
        and not isinstance(value, (str, bytes))
        and len(value) > 0
        and all(is_node(item) for item in value)
    )

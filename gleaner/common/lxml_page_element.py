"""lxml-backed implementation of the document query protocols.

LxmlDocument is the "current document" the field processor queries;
LxmlPageElement wraps each matched node and NodeList is the ordered
container returned by ``LxmlDocument.query``.

Parsing is lenient: malformed markup is recovered by lxml and parser
diagnostics are not reported.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from html import escape
from typing import overload

from lxml import etree, html

from gleaner.common.exceptions import SelectorException

_BR_TAG = re.compile(r"<br\s*/?>", re.IGNORECASE)

# Markup is always handed to lxml as UTF-8 bytes, so a document without a
# charset declaration is not misread as latin-1.
_DOCUMENT_PARSER = html.HTMLParser(recover=True, encoding="utf-8")
_FRAGMENT_PARSER = html.HTMLParser(recover=True)


def normalize_line_breaks(markup: str) -> str:
    """Replace ``<br>`` tags with CRLF so they survive text extraction."""
    return _BR_TAG.sub("\r\n", markup)


class LxmlPageElement:
    """PageElement implementation wrapping an lxml HtmlElement.

    Attributes:
        _element: The underlying lxml element.
        _url: The URL of the document the element came from.
    """

    def __init__(self, element: html.HtmlElement, url: str = ""):
        self._element = element
        self._url = url

    @property
    def element(self) -> html.HtmlElement:
        """The wrapped lxml element."""
        return self._element

    @property
    def url(self) -> str:
        """URL of the document this element belongs to."""
        return self._url

    def text_content(self) -> str:
        """Extract the visible text content.

        Returns:
            Visible text content of the element and its descendants.
        """
        return str(self._element.text_content())

    def get_attribute(self, name: str) -> str | None:
        """Extract an attribute value.

        Args:
            name: Name of the attribute.

        Returns:
            Value of the attribute, or None if it doesn't exist.
        """
        return self._element.get(name)

    def inner_html(self) -> str:
        """Get the inner HTML content, including leading text."""
        elem = self._element
        inner = escape(elem.text or "", quote=False)
        inner += "".join(
            html.tostring(child, encoding="unicode") for child in elem
        )
        return inner

    def tag_name(self) -> str:
        """Get the element's tag name as a lowercase string."""
        return str(self._element.tag).lower()

    def edit_html(self, editor: Callable[[str], str]) -> LxmlPageElement:
        """Re-parse the element's edited inner HTML into a detached element.

        The replacement markup is wrapped in a new ``<div>``, so the result
        keeps text and child elements but not the original tag or
        attributes.

        Args:
            editor: Receives the inner HTML and returns the replacement markup.

        Returns:
            A new LxmlPageElement for the parsed markup.
        """
        markup = editor(self.inner_html())
        fragment = html.fragment_fromstring(
            markup, create_parent="div", parser=_FRAGMENT_PARSER
        )
        return LxmlPageElement(fragment, self._url)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LxmlPageElement):
            return NotImplemented
        return self._element is other._element

    def __hash__(self) -> int:
        return id(self._element)

    def __repr__(self) -> str:
        return f"<LxmlPageElement {self.tag_name()} at {self._url or '?'}>"


class NodeList(Sequence[LxmlPageElement]):
    """Immutable, ordered list of nodes matched by one XPath query."""

    def __init__(self, nodes: Iterable[LxmlPageElement] = ()) -> None:
        self._nodes = tuple(nodes)

    @overload
    def __getitem__(self, index: int) -> LxmlPageElement: ...

    @overload
    def __getitem__(self, index: slice) -> NodeList: ...

    def __getitem__(
        self, index: int | slice
    ) -> LxmlPageElement | NodeList:
        if isinstance(index, slice):
            return NodeList(self._nodes[index])
        return self._nodes[index]

    def __len__(self) -> int:
        return len(self._nodes)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, NodeList):
            return self._nodes == other._nodes
        return NotImplemented

    def __repr__(self) -> str:
        return f"NodeList({list(self._nodes)!r})"


class LxmlDocument:
    """A parsed HTML document queried by XPath.

    Attributes:
        url: The URL the document was loaded from (may be empty).
    """

    def __init__(self, root: html.HtmlElement | None, url: str = "") -> None:
        self._root = root
        self.url = url

    @property
    def root(self) -> html.HtmlElement | None:
        """The document root, or None for an empty document."""
        return self._root

    def query(self, xpath: str) -> NodeList:
        """Return every element matching ``xpath``.

        Results that are not elements (text nodes, attribute values,
        numbers) are dropped.

        Raises:
            SelectorException: If the expression is not valid XPath.
        """
        if self._root is None:
            return NodeList()
        try:
            results = self._root.xpath(xpath)
        except etree.XPathError as e:
            raise SelectorException(xpath, str(e), self.url) from e

        if not isinstance(results, list):
            return NodeList()
        return NodeList(
            LxmlPageElement(r, self.url)
            for r in results
            if isinstance(r, html.HtmlElement)
        )

    def query_first(self, xpath: str) -> LxmlPageElement | None:
        """Return the first element matching ``xpath``, or None."""
        nodes = self.query(xpath)
        return nodes[0] if nodes else None

    def __repr__(self) -> str:
        return f"<LxmlDocument {self.url or '(no url)'}>"


def parse_document(markup: str | bytes, url: str = "") -> LxmlDocument:
    """Parse markup leniently into an LxmlDocument.

    Markup that yields no elements at all (empty or whitespace-only input)
    becomes an empty document that matches nothing.

    Args:
        markup: HTML source.
        url: URL the markup was loaded from, used for relative links.

    Returns:
        The parsed document.
    """
    if isinstance(markup, str):
        markup = markup.encode("utf-8")
    if not markup.strip():
        return LxmlDocument(None, url)
    try:
        root = html.document_fromstring(
            markup, parser=_DOCUMENT_PARSER, base_url=url or None
        )
    except etree.ParserError:
        return LxmlDocument(None, url)
    return LxmlDocument(root, url)

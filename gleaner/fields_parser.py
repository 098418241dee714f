"""Field processor: declarative extraction driven by a field map.

A FieldsParser subclass describes what to extract as a map of field
descriptors (usually by overriding ``get_map``). Each descriptor is
dispatched to the handler registered for its action and type, and the
handler's raw result is normalized by the filter chain.

Example::

    class ExampleCom(FieldsParser):
        def get_map(self):
            return {
                "title": {"xpath": "//h1"},
                "links": {
                    "type": "FieldCollection",
                    "xpath": "//a",
                    "attr": "href",
                },
                "detail": {
                    "type": "Page",
                    "xpath": "//a[@class='more']",
                    "fields": {"body": {"xpath": "//article"}},
                },
            }

    with ExampleCom("https://example.com/") as parser:
        parser.run()
        parser.to_dict()

Handlers return the failure marker ``FAILED`` for fields they cannot
produce. They never raise for a missing element or an unsuccessful
sub-page, so one broken field does not abort the rest of the map.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, ClassVar
from urllib.parse import urljoin

from gleaner.common.context_store import ContextStore
from gleaner.common.exceptions import TransientException
from gleaner.common.filter_chain import FilterChain
from gleaner.common.lxml_page_element import (
    LxmlDocument,
    LxmlPageElement,
    NodeList,
    normalize_line_breaks,
    parse_document,
)
from gleaner.common.naming import (
    domain_to_identifier,
    get_domain,
    identifier_to_domain,
)
from gleaner.common.page_element import is_node, is_node_sequence
from gleaner.common.registry import (
    HandlerRegistry,
    handler,
    handler_convert,
    type_filter,
)
from gleaner.common.request_manager import Fetcher, SyncRequestManager
from gleaner.common.type_chain import Category
from gleaner.data_types import (
    FAILED,
    FieldDescriptor,
    coerce_map,
)

logger = logging.getLogger(__name__)

# Context store names.
DOCUMENT = "document"
DOMAIN_PREFIX = "domain_prefix"

_CLOSING_TAG = re.compile(r"(</[^>]+>|<br\s*/?>)", re.IGNORECASE)
_LINE_BREAK = re.compile(r"[ \t\r\f\v]*\n\s*")


def _break_after_tags(markup: str) -> str:
    return _CLOSING_TAG.sub(r"\1\n", markup)


class FieldsParser:
    """Base class for field-map driven extraction.

    Results are kept twice: ``fields`` mirrors the nesting of the map
    (a ``Page`` field holds the mapping of its nested fields) and ``field``
    is flat, keyed by every processed field name, so handlers can read
    sibling values produced earlier in the same pass.

    Attributes:
        start_url: URL of the first document, used by ``run``.
        domain_prefix: Default prefix for ``FieldCollection`` values.
        fields: Hierarchical results.
        field: Flat results.
        context: Stack-based store holding the current document.
    """

    default_action: ClassVar[str] = "parse"
    default_type: ClassVar[str] = "Field"

    # Domain -> identifier overrides for domain_to_identifier.
    alias_domains: ClassVar[dict[str, str]] = {}

    registry: ClassVar[HandlerRegistry]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.registry = HandlerRegistry.for_class(cls)

    def __init__(
        self,
        start_url: str = "",
        request_manager: Fetcher | None = None,
        domain_prefix: str = "",
        timeout: float | None = None,
    ) -> None:
        """Initialize the parser.

        Args:
            start_url: URL of the first document.
            request_manager: Transport used for ``run`` and ``Page`` fields.
                A SyncRequestManager is created on first use when omitted,
                and closed by ``close``.
            domain_prefix: Default prefix for ``FieldCollection`` values.
            timeout: Timeout for the default request manager, in seconds.
        """
        self.start_url = start_url
        self.domain_prefix = domain_prefix
        self.fields: dict[str, Any] = {}
        self.field: dict[str, Any] = {}
        self.context = ContextStore()
        self.chain = FilterChain(self, self.registry)
        self._request_manager = request_manager
        self._owns_request_manager = request_manager is None
        self._timeout = timeout

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def request_manager(self) -> Fetcher:
        if self._request_manager is None:
            self._request_manager = SyncRequestManager(timeout=self._timeout)
        return self._request_manager

    def close(self) -> None:
        """Close the request manager if this parser created it."""
        if self._owns_request_manager and isinstance(
            self._request_manager, SyncRequestManager
        ):
            self._request_manager.close()
            self._request_manager = None

    def __enter__(self) -> FieldsParser:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def get_map(self) -> Mapping[str, Any]:
        """Return the field map processed by ``run``.

        Subclasses should override this method.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement get_map()"
        )

    def run(self) -> dict[str, Any] | Any:
        """Fetch ``start_url`` and process ``get_map()`` against it.

        Returns:
            The hierarchical results, or FAILED if the start page could
            not be fetched.
        """
        document = self._fetch_document("start page", self.start_url)
        if document is None:
            return FAILED
        with self.document(document):
            return self.process_fields()

    def to_dict(self, hierarchical: bool = True) -> dict[str, Any]:
        """Return a copy of the hierarchical or the flat results."""
        if hierarchical:
            return dict(self.fields)
        return dict(self.field)

    @classmethod
    def log(cls, message: str) -> None:
        """Diagnostic sink for recoverable extraction problems."""
        logger.warning(message)

    # -------------------------------------------------------------------------
    # Document context
    # -------------------------------------------------------------------------

    @property
    def current_document(self) -> LxmlDocument | None:
        """The document handlers query, or None outside any document."""
        return self.context.get(DOCUMENT, None)

    @contextmanager
    def document(self, document: LxmlDocument) -> Iterator[LxmlDocument]:
        """Make ``document`` current for the duration of the block."""
        with self.context.scoped(DOCUMENT, document):
            yield document

    @contextmanager
    def load(self, markup: str, url: str = "") -> Iterator[LxmlDocument]:
        """Parse ``markup`` and make it the current document."""
        with self.document(parse_document(markup, url)) as document:
            yield document

    def find(self, xpath: str) -> LxmlPageElement | None:
        """First element matching ``xpath`` in the current document."""
        document = self.current_document
        if document is None:
            return None
        return document.query_first(xpath)

    def find_all(self, xpath: str) -> NodeList:
        """Every element matching ``xpath`` in the current document."""
        document = self.current_document
        if document is None:
            return NodeList()
        return document.query(xpath)

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    def resolve(self, type_name: str, action: str) -> str | None:
        """Name of the handler for ``action`` + ``type_name``, or None."""
        return self.registry.resolve(type_name, action)

    def process_fields(
        self, field_map: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Process every field of ``field_map`` (default: ``get_map()``).

        Fields are processed in map order. Fields without a handler are
        left out of the results.

        Returns:
            The hierarchical results.
        """
        if field_map is None:
            field_map = self.get_map()
        self.fields.update(self._process_map(field_map))
        return self.fields

    def process_field(
        self,
        name: str,
        descriptor: FieldDescriptor | Mapping[str, Any],
        action: str | None = None,
    ) -> Any:
        """Process one field and record it in the flat results.

        Args:
            name: Field name.
            descriptor: Field descriptor or its mapping form.
            action: Action used when the descriptor has none.

        Returns:
            The filtered value, or None if no handler matches.
        """
        descriptor = FieldDescriptor.coerce(descriptor, name)
        return self._process(name, descriptor, action)[1]

    def apply_filters(
        self, handler_name: str, descriptor: FieldDescriptor, value: Any
    ) -> Any:
        """Run the filter chain for a value produced by ``handler_name``."""
        return self.chain.apply(handler_name, descriptor, value)

    def _process_map(self, field_map: Mapping[str, Any]) -> dict[str, Any]:
        results: dict[str, Any] = {}
        for name, descriptor in coerce_map(field_map).items():
            resolved, value = self._process(name, descriptor)
            if resolved:
                results[name] = value
        return results

    def _process(
        self,
        name: str,
        descriptor: FieldDescriptor,
        action: str | None = None,
    ) -> tuple[bool, Any]:
        type_name = descriptor.type or self.default_type
        action = descriptor.action or action or self.default_action

        handler_name = self.resolve(type_name, action)
        if handler_name is None:
            return False, None
        attr = self.registry.handler_attr(handler_name)
        method = getattr(self, attr)  # type: ignore[arg-type]

        result = method(name, descriptor)
        result = self.apply_filters(handler_name, descriptor, result)

        self.field[name] = result
        return True, result

    # -------------------------------------------------------------------------
    # Built-in handlers
    # -------------------------------------------------------------------------

    @handler("parse", "Field")
    def parse_field(self, name: str, descriptor: FieldDescriptor) -> Any:
        """First node matching ``xpath``."""
        node = None
        if isinstance(descriptor.xpath, str):
            node = self.find(descriptor.xpath)
        if node is None:
            self.log(f'Field "{name}" not found!')
            return FAILED
        return node

    @handler("parse", "FieldList")
    def parse_field_list(self, name: str, descriptor: FieldDescriptor) -> Any:
        """Every node matching ``xpath``, as a node list."""
        nodes = NodeList()
        if isinstance(descriptor.xpath, str):
            nodes = self.find_all(descriptor.xpath)
        if not nodes:
            self.log(f'Field "{name}" not found!')
            return FAILED
        return nodes

    @handler("parse", "FieldSet")
    def parse_field_set(self, name: str, descriptor: FieldDescriptor) -> Any:
        """First node of each expression in the ``xpath`` list.

        Expressions that match nothing are skipped, so the result can be
        shorter than the list.
        """
        if not isinstance(descriptor.xpath, list):
            return FAILED
        field_set = []
        for xpath in descriptor.xpath:
            node = self.find(xpath)
            if node is not None:
                field_set.append(node)
        return field_set

    @handler("parse", "FieldCollection")
    def parse_field_collection(
        self, name: str, descriptor: FieldDescriptor
    ) -> list[str]:
        """Attribute ``attr`` of every node matching ``xpath``.

        Nodes without the attribute are skipped. Each value is prefixed
        with the descriptor's ``prefix``, or the active domain prefix.
        """
        if descriptor.prefix is not None:
            prefix = descriptor.prefix
        else:
            prefix = self.context.get(DOMAIN_PREFIX, self.domain_prefix)

        collection: list[str] = []
        if not isinstance(descriptor.xpath, str) or not descriptor.attr:
            return collection
        for node in self.find_all(descriptor.xpath):
            value = node.get_attribute(descriptor.attr)
            if value:
                collection.append(prefix + value)
        return collection

    @handler("parse", "Page")
    def parse_page(self, name: str, descriptor: FieldDescriptor) -> Any:
        """Fetch a sub-document and process the nested ``fields`` against it.

        The URL comes from ``url``, from the sibling field named by
        ``url_field``, or from the node matched by ``xpath`` (its ``href``,
        else its text). The sub-document is current only while the nested
        fields are processed.

        The result is a mapping, which the filter chain does not classify,
        so closures on a ``Page`` descriptor (``filter``, ``array_filter``
        and the like) never run. Attach them to the nested fields instead.

        Returns:
            Mapping of nested results, or FAILED.
        """
        url = self._page_url(name, descriptor)
        if not url:
            return FAILED

        document = self._fetch_document(name, url)
        if document is None:
            return FAILED

        with self.document(document):
            return self._process_map(descriptor.fields or {})

    def _page_url(self, name: str, descriptor: FieldDescriptor) -> str | None:
        if descriptor.url:
            url = descriptor.url
        elif descriptor.url_field:
            url = self._url_from(self.field.get(descriptor.url_field))
        else:
            url = self._url_from(self.parse_field(name, descriptor))
        if not url:
            return None

        document = self.current_document
        base = document.url if document is not None else self.start_url
        if not base:
            return url
        try:
            return urljoin(base, url)
        except ValueError as e:
            self.log(f'Page "{name}" has an invalid URL {url!r}: {e}')
            return None

    @staticmethod
    def _url_from(value: Any) -> str | None:
        if isinstance(value, str):
            return value.strip() or None
        if is_node(value):
            href = value.get_attribute("href")
            return (href or value.text_content()).strip() or None
        return None

    def _fetch_document(self, name: str, url: str) -> LxmlDocument | None:
        try:
            page = self.request_manager.fetch(url)
        except TransientException as e:
            self.log(f'Page "{name}" could not be fetched: {e}')
            return None
        if not page.ok:
            self.log(
                f'Page "{name}" at {url} returned HTTP {page.status_code}'
            )
            return None
        return parse_document(
            normalize_line_breaks(page.body), page.url or url
        )

    # -------------------------------------------------------------------------
    # Filter table
    # -------------------------------------------------------------------------

    @type_filter(Category.DOM_ARRAY)
    def dom_array_filter(self, value: Any) -> Any:
        if is_node_sequence(value):
            return [self.dom_filter(node) for node in value]
        return value

    @type_filter(Category.DOM)
    def dom_filter(self, value: Any) -> Any:
        """Re-render a node so its text content is line oriented.

        A line break is inserted after every closing tag and ``<br>``, then
        the inner markup is parsed again into a detached node.
        """
        if is_node(value):
            return value.edit_html(_break_after_tags)
        return value

    @type_filter(Category.TEXT)
    def text_filter(self, value: Any) -> Any:
        """Collapse blank lines and surrounding whitespace, then strip."""
        if isinstance(value, str):
            return _LINE_BREAK.sub("\n", value).strip()
        return value

    @handler_convert("parseField", Category.TEXT)
    def parse_field_text_convert(self, value: Any) -> str | None:
        if is_node(value):
            return value.text_content()
        return None

    @handler_convert("parseFieldList", Category.DOM_ARRAY)
    def parse_field_list_dom_array_convert(self, value: Any) -> list[Any]:
        if isinstance(value, NodeList):
            return list(value)
        return []

    @handler_convert("parseFieldList", Category.ARRAY)
    @handler_convert("parseFieldSet", Category.ARRAY)
    def node_texts_array_convert(self, value: Any) -> list[str]:
        if is_node_sequence(value):
            return [self.text_filter(node.text_content()) for node in value]
        return []

    @handler_convert("parseFieldSet", Category.TEXT)
    def parse_field_set_text_convert(self, value: Any) -> str:
        if isinstance(value, list) and all(
            isinstance(item, str) for item in value
        ):
            return "".join(value)
        return ""

    # -------------------------------------------------------------------------
    # Naming helpers
    # -------------------------------------------------------------------------

    get_domain = staticmethod(get_domain)
    identifier_to_domain = staticmethod(identifier_to_domain)

    @classmethod
    def domain_to_identifier(cls, domain: str) -> str:
        """Identifier for ``domain``, honoring ``alias_domains``."""
        return domain_to_identifier(domain, cls.alias_domains)


FieldsParser.registry = HandlerRegistry.for_class(FieldsParser)

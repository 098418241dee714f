"""Value categories and the ordered type-degradation chain.

Every raw handler result is classified into one of five categories. The
same ordering drives the filter cascade: earlier categories are richer,
less normalized representations, later ones progressively plainer.

    dom_list -> dom_array -> array -> dom -> text
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from gleaner.common.lxml_page_element import NodeList
from gleaner.common.page_element import is_node, is_node_sequence


class Category(Enum):
    """Category of a value flowing through the filter chain.

    Values:
        DOM_LIST: Node list returned by a document query.
        DOM_ARRAY: Plain ordered collection of nodes.
        ARRAY: Any other ordered collection.
        DOM: A single node.
        TEXT: A string.
    """

    DOM_LIST = "dom_list"
    DOM_ARRAY = "dom_array"
    ARRAY = "array"
    DOM = "dom"
    TEXT = "text"

    @property
    def camel(self) -> str:
        """Capitalized camel-case form used in handler names (``DomArray``)."""
        return "".join(part.capitalize() for part in self.value.split("_"))


TYPE_CHAIN: tuple[Category, ...] = (
    Category.DOM_LIST,
    Category.DOM_ARRAY,
    Category.ARRAY,
    Category.DOM,
    Category.TEXT,
)


def classify(value: object) -> Category | None:
    """Assign ``value`` to a category, or None when no category applies.

    Rules are checked in TypeChain priority: node lists, then collections
    of nodes, then other ordered collections, then single nodes, then text.
    Mappings, numbers, None and the failure marker are not classified.
    """
    if isinstance(value, NodeList):
        return Category.DOM_LIST
    if is_node_sequence(value):
        return Category.DOM_ARRAY
    if isinstance(value, Sequence) and not isinstance(
        value, (str, bytes, bytearray)
    ):
        return Category.ARRAY
    if is_node(value):
        return Category.DOM
    if isinstance(value, str):
        return Category.TEXT
    return None


def chain_from(category: Category) -> tuple[Category, ...]:
    """Return the suffix of TYPE_CHAIN starting at ``category``."""
    return TYPE_CHAIN[TYPE_CHAIN.index(category) :]

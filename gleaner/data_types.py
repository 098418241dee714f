"""Data types shared by the field processor and its collaborators.

This module defines the values that flow between a field map, the handlers
and the filter chain:

1. FieldDescriptor - the declarative description of one extracted value
2. FAILED - the failure marker handlers return instead of raising
3. FetchResult - what the transport hands back for a sub-document
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from gleaner.common.exceptions import DescriptorException

# =============================================================================
# Failure marker
# =============================================================================


class Failed:
    """Sentinel type for a field that could not be produced.

    There is exactly one instance, ``FAILED``. It is falsy so that filter
    steps treat it like any other unsuccessful result, and it is never
    classified into a TypeChain category, so the filter chain leaves it
    untouched.
    """

    _instance: Failed | None = None

    def __new__(cls) -> Failed:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "<FAILED>"

    def __reduce__(self) -> str:
        return "FAILED"


FAILED = Failed()


# =============================================================================
# Field descriptors
# =============================================================================

# Suffixes of descriptor keys that name filter/convert closures.
_CLOSURE_SUFFIXES = ("_filter", "_convert")


class FieldDescriptor(BaseModel):
    """Declarative description of how to locate and transform one value.

    Descriptors are authored as plain mappings (usually nested dicts returned
    by ``FieldsParser.get_map``) and validated into this model. Unknown keys
    are ignored so that maps can carry extra authoring notes.

    Attributes:
        name: Optional name; the key in the enclosing map wins when present.
        type: Handler type, combined with ``action`` to pick a handler.
        action: Handler action. ``None`` means "use the processor default".
        xpath: XPath expression, or a list of them for ``FieldSet``.
        attr: Attribute to collect for ``FieldCollection``.
        url: Explicit sub-document URL for ``Page``.
        url_field: Name of an already-processed sibling field holding the URL.
        prefix: String prepended to each collected attribute value.
        fields: Nested map processed against a sub-document.
        filters: Closures keyed ``filter``, ``<category>_filter`` or
            ``<category>_convert``.
        no_filter: Skip the filter chain entirely when set.
    """

    model_config = ConfigDict(
        frozen=True, extra="ignore", arbitrary_types_allowed=True
    )

    name: str | None = None
    type: str = "Field"
    action: str | None = None
    xpath: str | list[str] | None = None
    attr: str | None = None
    url: str | None = None
    url_field: str | None = None
    prefix: str | None = None
    fields: dict[str, FieldDescriptor] | None = None
    filters: dict[str, Callable[[Any], Any]] = {}
    no_filter: bool = False

    @model_validator(mode="before")
    @classmethod
    def _lift_closures(cls, data: Any) -> Any:
        """Move closures authored directly on the descriptor into ``filters``."""
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        filters = dict(data.get("filters") or {})
        for key in list(data):
            if not callable(data[key]):
                continue
            if key == "filter" or key.endswith(_CLOSURE_SUFFIXES):
                filters.setdefault(key, data.pop(key))
        data["filters"] = filters
        return data

    @classmethod
    def coerce(
        cls, value: FieldDescriptor | Mapping[str, Any], name: str = ""
    ) -> FieldDescriptor:
        """Build a descriptor from a mapping, or return it unchanged.

        Args:
            value: A descriptor or a plain mapping of descriptor keys.
            name: Field name, used for error context.

        Returns:
            The validated FieldDescriptor.

        Raises:
            DescriptorException: If the mapping does not validate.
        """
        if isinstance(value, FieldDescriptor):
            return value
        try:
            return cls.model_validate(value)
        except ValidationError as e:
            raise DescriptorException(name, e.errors()) from e

    def closure(self, key: str) -> Callable[[Any], Any] | None:
        """Return the closure stored under ``key``, if it is callable."""
        candidate = self.filters.get(key)
        return candidate if callable(candidate) else None


FieldDescriptor.model_rebuild()


def coerce_map(
    field_map: Mapping[str, FieldDescriptor | Mapping[str, Any]],
) -> dict[str, FieldDescriptor]:
    """Validate every entry of a field map, preserving insertion order."""
    return {
        name: FieldDescriptor.coerce(descriptor, name)
        for name, descriptor in field_map.items()
    }


# =============================================================================
# Transport results
# =============================================================================


@dataclass(frozen=True)
class FetchResult:
    """Response of the transport collaborator.

    Attributes:
        status_code: HTTP status code.
        body: Decoded response body.
        url: Final URL after redirects.
    """

    status_code: int
    body: str
    url: str = ""

    @property
    def ok(self) -> bool:
        """True for a 200 response, the only status treated as success."""
        return self.status_code == 200

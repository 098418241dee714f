"""Handler and filter registration for field processors.

Handlers and filter-table entries are plain methods on a FieldsParser
subclass, tagged with the decorators in this module. When the class is
created its tagged methods are collected into a HandlerRegistry, so that
dispatch is a dictionary lookup rather than a probe for a method name.

Example::

    class ProductParser(FieldsParser):
        @handler("parse", "Price")
        def parse_price(self, name, descriptor):
            ...

        @handler_convert("parsePrice", Category.TEXT)
        def price_to_text(self, value):
            ...

A handler is identified by its handler name, the action followed by the
capitalized type (``parse`` + ``Price`` -> ``parsePrice``). Filter-table
entries refer to handlers by that name.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from typing_extensions import assert_never

from gleaner.common.type_chain import Category

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_REGISTRATIONS_ATTR = "_gleaner_registrations"


def handler_name(action: str, type_name: str) -> str:
    """Compose the handler name for an action/type pair.

    Examples:
        >>> handler_name("parse", "Field")
        'parseField'
        >>> handler_name("parse", "fieldSet")
        'parseFieldSet'
    """
    if not type_name:
        return action
    return action + type_name[0].upper() + type_name[1:]


class StepKind(Enum):
    """Kind of a filter chain step."""

    FILTER = "filter"
    CONVERT = "convert"


@dataclass(frozen=True)
class FilterStep:
    """A tagged step of the filter chain.

    A step with a ``handler`` belongs to that handler only; a step without
    one applies to every handler. A step without a ``category`` is a
    pre-filter (with a handler) or the final generic filter (without).

    Attributes:
        kind: Filter or convert.
        category: TypeChain category the step applies to.
        handler: Handler name the step is specific to.
    """

    kind: StepKind
    category: Category | None = None
    handler: str | None = None

    @property
    def label(self) -> str:
        """Conventional name of the step (``parseFieldTextConvert``)."""
        suffix = self.kind.value.capitalize()
        category = self.category.camel if self.category else ""
        if self.handler:
            return f"{self.handler}{category}{suffix}"
        if category:
            return f"{category[0].lower()}{category[1:]}{suffix}"
        return self.kind.value

    @property
    def closure_key(self) -> str:
        """Descriptor key for the closure form of a generic step.

        ``text_filter``, ``dom_array_convert``, or ``filter`` for the
        final generic step.
        """
        if self.category is None:
            return self.kind.value
        return f"{self.category.value}_{self.kind.value}"


@dataclass(frozen=True)
class HandlerKey:
    """Registration of a method as the handler for an action/type pair."""

    action: str
    type: str

    @property
    def name(self) -> str:
        return handler_name(self.action, self.type)


def _register(func: F, registration: HandlerKey | FilterStep) -> F:
    registrations = list(getattr(func, _REGISTRATIONS_ATTR, ()))
    registrations.append(registration)
    setattr(func, _REGISTRATIONS_ATTR, tuple(registrations))
    return func


def handler(action: str, type_name: str) -> Callable[[F], F]:
    """Register a method as the handler for ``action`` + ``type_name``.

    The method is called as ``method(name, descriptor)`` and returns the
    raw field value.
    """

    def decorator(func: F) -> F:
        return _register(func, HandlerKey(action, type_name))

    return decorator


def type_filter(category: Category) -> Callable[[F], F]:
    """Register a filter for every value of ``category``."""

    def decorator(func: F) -> F:
        return _register(func, FilterStep(StepKind.FILTER, category))

    return decorator


def handler_filter(
    handler: str, category: Category | None = None
) -> Callable[[F], F]:
    """Register a filter specific to one handler.

    Without a category the filter is the handler's pre-filter, run on
    the raw value before classification.
    """

    def decorator(func: F) -> F:
        return _register(func, FilterStep(StepKind.FILTER, category, handler))

    return decorator


def handler_convert(handler: str, category: Category) -> Callable[[F], F]:
    """Register a converter from a richer value to ``category`` for one handler."""

    def decorator(func: F) -> F:
        return _register(
            func, FilterStep(StepKind.CONVERT, category, handler)
        )

    return decorator


def get_registrations(func: Any) -> tuple[HandlerKey | FilterStep, ...]:
    """Return the registrations attached to a (possibly wrapped) method."""
    func = getattr(func, "__func__", func)
    return getattr(func, _REGISTRATIONS_ATTR, ())


class HandlerRegistry:
    """Table of handler and filter-step attribute names for one class.

    Entries map to attribute names, not functions, so a subclass that
    overrides a registered method without re-decorating it still takes
    its place.
    """

    def __init__(self) -> None:
        self._handlers: dict[tuple[str, str], str] = {}
        self._names: dict[str, str] = {}
        self._steps: dict[FilterStep, str] = {}

    @classmethod
    def for_class(cls, klass: type) -> HandlerRegistry:
        """Collect the registrations of ``klass`` and its bases.

        Bases are scanned first, so registrations made in a subclass win.
        A decorated method replaces every registration inherited under its
        attribute name; an undecorated override keeps them.
        """
        registry = cls()
        for base in reversed(klass.__mro__):
            for attr, value in vars(base).items():
                registrations = get_registrations(value)
                if not registrations:
                    continue
                registry.discard(attr)
                for registration in registrations:
                    registry.add(registration, attr)
        return registry

    def add(self, registration: HandlerKey | FilterStep, attr: str) -> None:
        """Map a registration to the attribute implementing it."""
        match registration:
            case HandlerKey(action=action, type=type_name):
                self._handlers[(action, type_name)] = attr
                self._names[registration.name] = attr
            case FilterStep():
                self._steps[registration] = attr
            case _:
                assert_never(registration)

    def discard(self, attr: str) -> None:
        """Drop every registration implemented by ``attr``."""
        for table in (self._handlers, self._names, self._steps):
            for key in [key for key, value in table.items() if value == attr]:
                del table[key]

    def resolve(self, type_name: str, action: str) -> str | None:
        """Return the handler name for a type/action pair, or None.

        The exact pair is tried first, then the composed handler name, so
        ``("fieldSet", "parse")`` and ``("FieldSet", "parse")`` resolve to
        the same handler.
        """
        if (action, type_name) in self._handlers:
            return handler_name(action, type_name)
        name = handler_name(action, type_name)
        if name in self._names:
            return name
        logger.debug("No handler for action=%r type=%r", action, type_name)
        return None

    def handler_attr(self, name: str) -> str | None:
        """Attribute implementing the handler called ``name``."""
        return self._names.get(name)

    def step_attr(self, step: FilterStep) -> str | None:
        """Attribute implementing a filter step, if one is registered."""
        return self._steps.get(step)

    @property
    def handler_names(self) -> list[str]:
        return sorted(self._names)

    @property
    def steps(self) -> dict[FilterStep, str]:
        return dict(self._steps)

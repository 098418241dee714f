"""Cascading filter/convert pipeline.

FilterChain normalizes a handler's raw result, degrading it along the
TypeChain (``dom_list -> dom_array -> array -> dom -> text``) until a
level-specific converter or filter claims it.

For a handler ``h`` and a value whose category is ``T0``:

1. pre-filter ``h`` (FilterStep(FILTER, None, h)), always run
2. classify the value; unclassifiable values are returned as they are
3. for ``T0`` run, in order: the generic ``T0`` filter, the ``h``-specific
   ``T0`` filter and the descriptor closure ``<T0>_filter``
4. for each later category ``Tn``, try until one succeeds: the
   ``h``-specific ``Tn`` converter, the closure ``<Tn>_convert``, the
   ``h``-specific ``Tn`` filter, the closure ``<Tn>_filter``. On success
   the generic ``Tn`` filter finishes the value before moving on
5. the descriptor closure ``filter``, always run

Descriptor closures in steps 3 and 4 are best-effort: an exception inside
one counts as "did not succeed". Filter-table methods are part of the
parser and their exceptions propagate.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from gleaner.common.registry import FilterStep, HandlerRegistry, StepKind
from gleaner.common.type_chain import Category, chain_from, classify
from gleaner.data_types import FieldDescriptor

logger = logging.getLogger(__name__)


def best_effort(func: Callable[[Any], Any], value: Any) -> tuple[bool, Any]:
    """Call ``func(value)`` without letting failures escape.

    Returns:
        ``(True, result)`` when the call returns a truthy result, otherwise
        ``(False, value)`` with the value unchanged.
    """
    try:
        result = func(value)
    except Exception:
        logger.debug("Best-effort filter %r failed", func, exc_info=True)
        return False, value
    if result:
        return True, result
    return False, value


def cascade_steps(
    handler: str, category: Category
) -> tuple[FilterStep, FilterStep, FilterStep, FilterStep]:
    """The four attempts tried for ``category`` during the cascade."""
    return (
        FilterStep(StepKind.CONVERT, category, handler),
        FilterStep(StepKind.CONVERT, category),
        FilterStep(StepKind.FILTER, category, handler),
        FilterStep(StepKind.FILTER, category),
    )


class FilterChain:
    """Runs the filter cascade for the handlers of one parser instance.

    Attributes:
        owner: The object whose methods implement the filter table.
        registry: The owner's handler registry.
    """

    def __init__(self, owner: Any, registry: HandlerRegistry) -> None:
        self.owner = owner
        self.registry = registry

    def method(self, step: FilterStep) -> Callable[[Any], Any] | None:
        """Bound method implementing ``step``, or None."""
        attr = self.registry.step_attr(step)
        if attr is None:
            return None
        return getattr(self.owner, attr)

    def apply(
        self,
        handler: str,
        descriptor: FieldDescriptor,
        value: Any,
        trace: list[str] | None = None,
    ) -> Any:
        """Normalize ``value`` produced by ``handler`` for ``descriptor``.

        Args:
            handler: Name of the handler that produced the value.
            descriptor: The field descriptor, source of closures.
            value: Raw handler result.
            trace: Optional list receiving the label of every step that
                ran (unconditional steps) or succeeded (cascade attempts).

        Returns:
            The normalized value. With ``no_filter`` set this is ``value``.
        """
        if descriptor.no_filter:
            return value

        value = self._run(
            FilterStep(StepKind.FILTER, None, handler), value, trace
        )

        start = classify(value)
        if start is None:
            return value

        first, *rest = chain_from(start)

        value = self._run(FilterStep(StepKind.FILTER, first), value, trace)
        value = self._run(
            FilterStep(StepKind.FILTER, first, handler), value, trace
        )
        value = self._attempt_closure(
            descriptor, FilterStep(StepKind.FILTER, first), value, trace
        )[1]

        for category in rest:
            succeeded, value = self._cascade(
                handler, descriptor, category, value, trace
            )
            if succeeded:
                value = self._run(
                    FilterStep(StepKind.FILTER, category), value, trace
                )

        final = descriptor.closure(FilterStep(StepKind.FILTER).closure_key)
        if final is not None:
            value = final(value)
            if trace is not None:
                trace.append("filter")

        return value

    def _cascade(
        self,
        handler: str,
        descriptor: FieldDescriptor,
        category: Category,
        value: Any,
        trace: list[str] | None,
    ) -> tuple[bool, Any]:
        """Try the four cascade attempts for ``category`` in order."""
        for step in cascade_steps(handler, category):
            if step.handler is None:
                succeeded, value = self._attempt_closure(
                    descriptor, step, value, trace
                )
            else:
                succeeded, value = self._attempt_method(step, value, trace)
            if succeeded:
                return True, value
        return False, value

    def _run(
        self, step: FilterStep, value: Any, trace: list[str] | None
    ) -> Any:
        """Run an unconditional filter-table step, if registered."""
        method = self.method(step)
        if method is None:
            return value
        if trace is not None:
            trace.append(step.label)
        return method(value)

    def _attempt_method(
        self, step: FilterStep, value: Any, trace: list[str] | None
    ) -> tuple[bool, Any]:
        method = self.method(step)
        if method is None:
            return False, value
        result = method(value)
        if not result:
            return False, value
        if trace is not None:
            trace.append(step.label)
        return True, result

    def _attempt_closure(
        self,
        descriptor: FieldDescriptor,
        step: FilterStep,
        value: Any,
        trace: list[str] | None,
    ) -> tuple[bool, Any]:
        closure = descriptor.closure(step.closure_key)
        if closure is None:
            return False, value
        succeeded, value = best_effort(closure, value)
        if succeeded and trace is not None:
            trace.append(step.closure_key)
        return succeeded, value

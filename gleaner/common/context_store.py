"""Stack-based named variable store.

The field processor keeps transient state, most importantly the current
document, in a ContextStore. Every name maps to a stack of values: a nested
extraction pass pushes its own value before recursing and pops it when done,
so the caller's value is visible again afterwards.

Usage::

    store = ContextStore()
    store.push("document", outer)
    with store.scoped("document", inner):
        assert store.get("document") is inner
    assert store.get("document") is outer
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class _Absent:
    """Type of the ``ABSENT`` sentinel returned for unset names."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "<ABSENT>"


ABSENT: Any = _Absent()


class ContextStore:
    """Mapping from name to an ordered stack of values."""

    def __init__(self) -> None:
        self._stacks: dict[str, list[Any]] = {}

    def push(self, name: str, value: Any) -> None:
        """Push ``value`` on top of the stack for ``name``."""
        self._stacks.setdefault(name, []).append(value)

    def pop(self, name: str) -> Any:
        """Remove and return the top value for ``name``.

        Popping an unset name is a no-op that returns ``ABSENT``.
        """
        stack = self._stacks.get(name)
        if not stack:
            return ABSENT
        value = stack.pop()
        if not stack:
            del self._stacks[name]
        return value

    def get(self, name: str, default: Any = ABSENT) -> Any:
        """Return the top value for ``name`` without removing it."""
        stack = self._stacks.get(name)
        if not stack:
            return default
        return stack[-1]

    def isset(self, name: str) -> bool:
        """True when ``name`` has at least one value."""
        return bool(self._stacks.get(name))

    def depth(self, name: str) -> int:
        """Number of values stacked under ``name``."""
        return len(self._stacks.get(name, ()))

    def snapshot(self) -> dict[str, tuple[Any, ...]]:
        """Return an immutable copy of every stack, for comparisons in tests
        and diagnostics."""
        return {name: tuple(stack) for name, stack in self._stacks.items()}

    @contextmanager
    def scoped(self, name: str, value: Any) -> Iterator[Any]:
        """Push ``value`` for the duration of the block, popping it on exit
        even when the block raises."""
        self.push(name, value)
        try:
            yield value
        finally:
            self.pop(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.isset(name)

    def __repr__(self) -> str:
        depths = ", ".join(
            f"{name}={len(stack)}" for name, stack in self._stacks.items()
        )
        return f"ContextStore({depths})"

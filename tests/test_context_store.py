"""Tests for the stack-based ContextStore."""

import pytest

from gleaner.common.context_store import ABSENT, ContextStore


class TestContextStore:
    """Tests for push/pop/get/isset semantics."""

    def test_get_unset_returns_absent(self):
        """Reading an unset name shall yield ABSENT, not raise."""
        store = ContextStore()

        assert store.get("document") is ABSENT
        assert not store.get("document")

    def test_get_unset_returns_default(self):
        """get() shall return the supplied default for an unset name."""
        store = ContextStore()

        assert store.get("document", None) is None

    def test_push_then_get_returns_top(self):
        """get() shall return the most recently pushed value."""
        store = ContextStore()
        store.push("document", "outer")
        store.push("document", "inner")

        assert store.get("document") == "inner"
        assert store.depth("document") == 2

    def test_pop_restores_previous_value(self):
        """pop() shall remove the top value and expose the one beneath."""
        store = ContextStore()
        store.push("document", "outer")
        store.push("document", "inner")

        assert store.pop("document") == "inner"
        assert store.get("document") == "outer"

    def test_pop_unset_is_noop(self):
        """Popping an unset name shall do nothing and return ABSENT."""
        store = ContextStore()

        assert store.pop("document") is ABSENT
        assert store.snapshot() == {}

    def test_isset_tracks_non_empty_stack(self):
        """isset() shall be True only while the stack is non-empty."""
        store = ContextStore()
        assert not store.isset("document")

        store.push("document", "page")
        assert store.isset("document")
        assert "document" in store

        store.pop("document")
        assert not store.isset("document")
        assert "document" not in store

    def test_falsy_values_are_still_set(self):
        """A pushed falsy value shall count as set."""
        store = ContextStore()
        store.push("domain_prefix", "")

        assert store.isset("domain_prefix")
        assert store.get("domain_prefix") == ""

    def test_names_are_independent(self):
        """Stacks for different names shall not interfere."""
        store = ContextStore()
        store.push("document", "page")
        store.push("domain_prefix", "https://example.com")
        store.pop("document")

        assert store.get("domain_prefix") == "https://example.com"
        assert store.get("document") is ABSENT


class TestScoped:
    """Tests for the scoped() context manager."""

    def test_scoped_pushes_and_pops(self):
        """scoped() shall make the value current only inside the block."""
        store = ContextStore()
        store.push("document", "outer")

        with store.scoped("document", "inner") as value:
            assert value == "inner"
            assert store.get("document") == "inner"

        assert store.get("document") == "outer"

    def test_scoped_pops_on_exception(self):
        """scoped() shall restore the previous value when the block raises."""
        store = ContextStore()
        before = store.snapshot()

        with pytest.raises(RuntimeError):
            with store.scoped("document", "inner"):
                raise RuntimeError("boom")

        assert store.snapshot() == before

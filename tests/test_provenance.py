# tests/test_provenance.py
"""
Tests for ProvenanceEntry and ProvenanceStore.
"""

import pytest

from confbind.provenance import ProvenanceEntry, ProvenanceStore

# ---------------------------------------------------------------------------
# ProvenanceEntry
# ---------------------------------------------------------------------------


class TestProvenanceEntry:

    def test_frozen(self):
        entry = ProvenanceEntry("db.port", 5432, "default")
        with pytest.raises(AttributeError):
            entry.value = 1  # type: ignore[misc]

    def test_kind(self):
        assert ProvenanceEntry("a", 1, "file:/etc/app.yaml").kind == "file"
        assert ProvenanceEntry("a", 1, "env:APP_A").kind == "env"
        assert ProvenanceEntry("a", 1, "default").kind == "default"

    def test_str(self):
        text = str(ProvenanceEntry("db.host", "db", "env:DB_HOST"))
        assert text == "db.host = 'db'  ← env:DB_HOST"


# ---------------------------------------------------------------------------
# ProvenanceStore
# ---------------------------------------------------------------------------


class TestProvenanceStore:

    def test_record_and_get(self):
        store = ProvenanceStore()
        store.record("a", 1, "default")
        assert store.get("a") == ProvenanceEntry("a", 1, "default")
        assert store.get("missing") is None

    def test_history_oldest_first(self):
        store = ProvenanceStore()
        store.record("a", 1, "file:c.yaml")
        store.record("a", 2, "env:A")
        store.record("a", 3, "env:A")
        assert [e.value for e in store.get_history("a")] == [1, 2, 3]
        assert store.get("a").value == 3

    def test_history_of_unknown_field(self):
        assert ProvenanceStore().get_history("nope") == []

    def test_all_entries_is_a_copy(self):
        store = ProvenanceStore()
        store.record("a", 1, "default")
        entries = store.all_entries()
        entries.clear()
        assert store.get("a") is not None

    def test_sources_summary(self):
        store = ProvenanceStore()
        store.record("a", 1, "file:c.yaml")
        store.record("b", 2, "env:B")
        store.record("c", 3, "env:C")
        store.record("a", 4, "default")
        assert store.sources_summary() == {"env": 2, "default": 1}

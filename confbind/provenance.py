# confbind/provenance.py
"""
confbind.provenance
-------------------

Optional record of where each bound field got its value.

Pass a ``ProvenanceStore`` to any entry point in ``confbind.loader`` and
every assignment made by the file loader or the binder is recorded under the
field's dotted path. Sources look like:

    ``"file:/etc/myapp/config.yaml"``
    ``"env:DB_HOST"``
    ``"default"``

A field written twice (file, then environment) keeps the earlier entries as
history, so "why is this value X?" can be answered by reading the chain.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ProvenanceEntry:
    """One assignment of one field.

    Attributes:
        field_name: Dotted attribute path from the root (e.g. ``"db.host"``).
        value: The converted value that was assigned.
        source: ``"file:<path>"``, ``"env:<NAME>"`` or ``"default"``.
    """

    field_name: str
    value: Any
    source: str

    @property
    def kind(self) -> str:
        """Source category: ``file``, ``env`` or ``default``."""
        return self.source.partition(":")[0]

    def __str__(self) -> str:
        return f"{self.field_name} = {self.value!r}  ← {self.source}"


@dataclass
class ProvenanceStore:
    """Latest entry per field plus the entries it replaced."""

    _current: dict[str, ProvenanceEntry] = field(default_factory=dict)
    _replaced: defaultdict[str, list[ProvenanceEntry]] = field(default_factory=lambda: defaultdict(list))

    def record(self, field_name: str, value: Any, source: str) -> None:
        """Record an assignment; a previous entry for the field moves to history."""
        previous = self._current.get(field_name)
        if previous is not None:
            self._replaced[field_name].append(previous)
        self._current[field_name] = ProvenanceEntry(field_name, value, source)

    def get(self, field_name: str) -> ProvenanceEntry | None:
        """Return the winning entry for a field, or None if it was never assigned."""
        return self._current.get(field_name)

    def get_history(self, field_name: str) -> list[ProvenanceEntry]:
        """Return every assignment of a field, oldest first, the winning one last."""
        chain = list(self._replaced.get(field_name, ()))
        if field_name in self._current:
            chain.append(self._current[field_name])
        return chain

    def all_entries(self) -> dict[str, ProvenanceEntry]:
        """Return a copy of the winning entries keyed by field path."""
        return dict(self._current)

    def sources_summary(self) -> dict[str, int]:
        """Count winning entries per source category."""
        return dict(Counter(entry.kind for entry in self._current.values()))

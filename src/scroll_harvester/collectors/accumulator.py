"""Append-only identifier set that remembers first-seen order."""

from __future__ import annotations

from collections.abc import Iterable


class DeduplicatingAccumulator:
    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._ordered: list[str] = []
        self._history: list[int] = []

    def add(self, identifiers: Iterable[str]) -> int:
        """Insert unseen identifiers; returns how many were new. Empty values are skipped."""
        added = 0
        for identifier in identifiers:
            if not identifier or identifier in self._seen:
                continue
            self._seen.add(identifier)
            self._ordered.append(identifier)
            added += 1
        self._history.append(added)
        return added

    def size(self) -> int:
        return len(self._ordered)

    def contains(self, identifier: str) -> bool:
        return identifier in self._seen

    def snapshot(self) -> tuple[str, ...]:
        return tuple(self._ordered)

    @property
    def history(self) -> tuple[int, ...]:
        """New-identifier count of each `add` call, oldest first."""
        return tuple(self._history)

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._seen

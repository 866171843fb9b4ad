"""In-memory guard against redundant resolution work.

The tracker only skips database round-trips. The durable ``resolved_at``
column remains the source of truth: a cold or stale tracker answers "not
resolved", and the resolver re-checks the store before writing anything.
"""

from collections import defaultdict
from typing import Iterable


class ResolvedEventTracker:
    """Per-game set of keys (at-bat indices or pitcher ids) known to be resolved.

    Mutated only from the scheduler's single event loop, so no locking.

    Example:
        tracker = ResolvedEventTracker()
        if not tracker.is_initialized(game_pk):
            tracker.initialize(game_pk, await store.get_resolved_event_indices(game_pk))
        if not tracker.is_resolved(game_pk, 42):
            ...
    """

    def __init__(self, name: str = "at_bat"):
        self.name = name
        self._resolved: dict[int, set[int]] = defaultdict(set)
        self._initialized: set[int] = set()

    def is_resolved(self, game_pk: int, key: int) -> bool:
        return key in self._resolved.get(game_pk, ())

    def mark_resolved(self, game_pk: int, key: int) -> bool:
        """Record key as resolved.

        Returns:
            True if the key was newly added, False if it was already present
        """
        keys = self._resolved[game_pk]
        if key in keys:
            return False
        keys.add(key)
        return True

    def initialize(self, game_pk: int, already_resolved: Iterable[int]) -> None:
        """Seed a game from durable state the first time it is touched."""
        self._resolved[game_pk].update(already_resolved)
        self._initialized.add(game_pk)

    def is_initialized(self, game_pk: int) -> bool:
        return game_pk in self._initialized

    def forget(self, game_pk: int) -> None:
        """Drop all state for a game."""
        self._resolved.pop(game_pk, None)
        self._initialized.discard(game_pk)

    def resolved_keys(self, game_pk: int) -> set[int]:
        return set(self._resolved.get(game_pk, ()))

    def stats(self) -> dict:
        return {
            "name": self.name,
            "games": len(self._resolved),
            "initialized_games": len(self._initialized),
            "resolved_keys": sum(len(keys) for keys in self._resolved.values()),
        }

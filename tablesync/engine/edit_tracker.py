"""
Edit Tracker - remembers which rows diverged from the last load
"""

import logging
from typing import Any, Callable, Iterable, List, Sequence, Set

logger = logging.getLogger(__name__)

IdOf = Callable[[Any, int], str]


class EditTracker:
    """Set of row identities edited since the last load/reload"""

    def __init__(self):
        self._changed: Set[str] = set()

    def record_edit(self, row_id: str) -> None:
        """Mark ``row_id`` as changed. Recording it again has no effect."""
        if row_id not in self._changed:
            self._changed.add(row_id)
            logger.debug("Row %r marked as changed (%d total)", row_id, len(self._changed))

    def reset(self) -> None:
        """Forget every tracked identity"""
        self._changed.clear()

    def is_changed(self, row_id: str) -> bool:
        return row_id in self._changed

    def retain(self, row_ids: Iterable[str]) -> None:
        """Drop identities that are no longer part of the loaded dataset"""
        stale = self._changed.difference(row_ids)
        if stale:
            logger.debug("Purging %d stale row identities", len(stale))
            self._changed.difference_update(stale)

    def snapshot_changed(self, all_rows: Sequence[Any], id_of: IdOf) -> List[Any]:
        """
        Filter ``all_rows`` down to the rows whose identity is tracked.

        ``id_of(row, index)`` resolves the identity of each row. The result is
        always rebuilt from the rows handed in, never cached per edit, so
        several fields edited on the same row show up consistently.
        """
        if not self._changed:
            return []
        return [row for index, row in enumerate(all_rows) if id_of(row, index) in self._changed]

    @property
    def changed_ids(self) -> Set[str]:
        return set(self._changed)

    def __len__(self) -> int:
        return len(self._changed)

    def __contains__(self, row_id: object) -> bool:
        return row_id in self._changed

"""Snapshot-based undo/redo history."""

from __future__ import annotations

import copy
import logging
from typing import List, Optional

from .config import HISTORY_MAX_SNAPSHOTS
from .models import Document

LOGGER = logging.getLogger(__name__)


class HistoryManager:
    """Bounded stack of deep-copied :class:`Document` snapshots plus a redo stack.

    Snapshots are copied on the way in and on the way out, so nothing a caller
    holds can alter a stored snapshot.
    """

    def __init__(self, max_snapshots: int = HISTORY_MAX_SNAPSHOTS) -> None:
        if max_snapshots < 1:
            raise ValueError("max_snapshots must be at least 1")
        self.max_snapshots = max_snapshots
        self._past: List[Document] = []
        self._future: List[Document] = []

    def push(self, document: Document) -> None:
        """Record the pre-mutation state and drop any redo branch."""

        self._past.append(copy.deepcopy(document))
        if len(self._past) > self.max_snapshots:
            del self._past[0 : len(self._past) - self.max_snapshots]
            LOGGER.debug("History full; evicted oldest snapshot")
        self._future.clear()

    def undo(self, current: Document) -> Optional[Document]:
        """Return the previous state, or ``None`` when there is nothing to undo."""

        if not self._past:
            return None
        snapshot = self._past.pop()
        self._future.append(copy.deepcopy(current))
        return copy.deepcopy(snapshot)

    def redo(self, current: Document) -> Optional[Document]:
        """Return the next state, or ``None`` when there is nothing to redo."""

        if not self._future:
            return None
        snapshot = self._future.pop()
        self._past.append(copy.deepcopy(current))
        return copy.deepcopy(snapshot)

    def can_undo(self) -> bool:
        return bool(self._past)

    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def undo_depth(self) -> int:
        return len(self._past)

    @property
    def redo_depth(self) -> int:
        return len(self._future)

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()


__all__ = ["HistoryManager"]

"""
Bounded undo/redo history for a plan editing session.
"""

import copy
import logging
from collections import deque
from enum import Enum
from typing import Deque, Optional

from models.data_models import Plan

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 20


class HistoryState(Enum):
    """IDLE records changes; APPLYING_SNAPSHOT skips the next one."""
    IDLE = "idle"
    APPLYING_SNAPSHOT = "applying_snapshot"


class PlanHistory:
    """
    Snapshot stack with a cursor.

    Snapshots are deep copies, so neither the caller's plan nor a restored
    plan ever shares state with the stack. After undo or redo the history
    moves to APPLYING_SNAPSHOT and the next ``record`` call, which echoes
    the restored plan back, is ignored and returns the history to IDLE.
    """

    def __init__(self, initial: Optional[Plan] = None, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self.state = HistoryState.IDLE
        self._snapshots: Deque[Plan] = deque(maxlen=capacity)
        self._cursor = -1
        if initial is not None:
            self.reset(initial)

    def reset(self, plan: Plan) -> None:
        """Start a new history for a freshly loaded plan."""
        self._snapshots.clear()
        self._snapshots.append(copy.deepcopy(plan))
        self._cursor = 0
        self.state = HistoryState.IDLE

    def record(self, plan: Plan) -> bool:
        """
        Push a snapshot of ``plan``.

        Any redo entries beyond the cursor are discarded. The oldest snapshot
        is evicted when the stack is full.

        Returns:
            True if a snapshot was stored
        """
        if self.state == HistoryState.APPLYING_SNAPSHOT:
            self.state = HistoryState.IDLE
            logger.debug("Skipped recording the restored snapshot")
            return False

        if self._cursor >= 0 and self._snapshots[self._cursor] == plan:
            return False

        while len(self._snapshots) > self._cursor + 1:
            self._snapshots.pop()

        self._snapshots.append(copy.deepcopy(plan))
        self._cursor = len(self._snapshots) - 1
        return True

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return 0 <= self._cursor < len(self._snapshots) - 1

    def __len__(self) -> int:
        return len(self._snapshots)

    def current(self) -> Optional[Plan]:
        if self._cursor < 0:
            return None
        return copy.deepcopy(self._snapshots[self._cursor])

    def undo(self) -> Optional[Plan]:
        """Step back one snapshot; None when there is nothing to undo."""
        if not self.can_undo:
            return None
        self._cursor -= 1
        self.state = HistoryState.APPLYING_SNAPSHOT
        return copy.deepcopy(self._snapshots[self._cursor])

    def redo(self) -> Optional[Plan]:
        """Step forward one snapshot; None when there is nothing to redo."""
        if not self.can_redo:
            return None
        self._cursor += 1
        self.state = HistoryState.APPLYING_SNAPSHOT
        return copy.deepcopy(self._snapshots[self._cursor])

"""
modules/reoptimization/undo_ledger.py
---------------------------------------
Bounded, keyed history of applied reshuffles.

One ledger belongs to one ReshufflingService instance. Entries are keyed by an
opaque undo token. When a record pushes the ledger past capacity the OLDEST
entry is evicted (insertion order, FIFO; reading an entry does not refresh
it). Entries leave only by eviction or by being consumed through pop().
In-memory only.
"""

from __future__ import annotations
from collections import OrderedDict
from datetime import datetime
import logging
from typing import Optional

from travel_scheduler import config
from travel_scheduler.schemas.reshuffling import ReshuffleEvent

logger = logging.getLogger(__name__)


class UndoLedger:

    def __init__(self, max_size: int = config.MAX_UNDO_HISTORY):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: OrderedDict[str, ReshuffleEvent] = OrderedDict()

    def record(self, token: str, event: ReshuffleEvent) -> None:
        self._entries[token] = event
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Undo ledger full, evicted %s", evicted)

    def peek(self, token: str) -> Optional[ReshuffleEvent]:
        return self._entries.get(token)

    def pop(self, token: str) -> Optional[ReshuffleEvent]:
        """Consume an entry and stamp undone_at. None if unknown or evicted."""
        event = self._entries.pop(token, None)
        if event is not None:
            event.undone_at = datetime.now()
        return event

    def tokens(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: object) -> bool:
        return token in self._entries

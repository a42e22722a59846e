import copy
import datetime
from dataclasses import dataclass
from typing import List, Optional

from models.entities import AuctionState, utcnow


@dataclass
class HistoryEntry:
    state: AuctionState
    action: str
    timestamp: datetime.datetime


class UndoHistory:
    """입찰 직전 전체 상태 스냅샷 스택 (되돌리기는 입찰만 대상)"""

    def __init__(self):
        self._entries: List[HistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def push(self, state: AuctionState, action: str) -> HistoryEntry:
        entry = HistoryEntry(state=copy.deepcopy(state), action=action, timestamp=utcnow())
        self._entries.append(entry)
        return entry

    def pop(self) -> Optional[HistoryEntry]:
        if not self._entries:
            return None
        return self._entries.pop()

    def can_undo(self) -> bool:
        return len(self._entries) > 0

    def clear(self):
        self._entries.clear()

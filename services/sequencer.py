"""
Sequencer: 경매 진행 상태 머신

NotStarted -> Active(선수 i) -> Active(선수 i+1) -> ... -> Completed

- advance(): 다음 '대기' 선수로 커서 이동 (낙찰/유찰/주장 건너뜀)
- 대기 선수가 없으면 유찰자 재경매 라운드(설정 시) 또는 종료
- 모든 팀이 만원이거나 아무 팀도 남은 선수를 살 수 없으면 즉시 종료
"""
import logging
import random
from typing import Callable, List, Optional

from models.entities import AuctionState, Player
from services.budget import can_afford
from services.errors import AuctionStateError

logger = logging.getLogger(__name__)


class Sequencer:
    def __init__(
        self,
        state: AuctionState,
        rng: Optional[random.Random] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ):
        self.state = state
        self.rng = rng or random.Random()
        self.on_complete = on_complete

    # ───────────────────────── 조회 ─────────────────────────
    def pending_players(self) -> List[Player]:
        return [p for p in self.state.players if p.is_pending]

    def unsold_players(self) -> List[Player]:
        return [p for p in self.state.players if p.is_unsold and not p.is_sold]

    def all_rosters_full(self) -> bool:
        return all(t.is_full for t in self.state.teams)

    def anyone_can_afford(self, players: List[Player]) -> bool:
        settings = self.state.settings
        return any(can_afford(t, p, settings) for t in self.state.teams for p in players)

    def is_exhausted(self) -> bool:
        """진행할 수 없는 상태인지 (목록 중간이라도)"""
        if self.all_rosters_full():
            return True
        return not self.anyone_can_afford(self.pending_players())

    def next_pending_index(self, start: int = 0) -> Optional[int]:
        for i in range(max(start, 0), len(self.state.players)):
            if self.state.players[i].is_pending:
                return i
        return None

    # ───────────────────────── 전이 ─────────────────────────
    def start(self) -> bool:
        state = self.state
        if state.is_started:
            raise AuctionStateError("이미 경매 시작")

        state.is_started = True
        state.is_completed = False
        state.unsold_rounds_left = state.settings.unsold_return_rounds
        state.current_index = 0
        logger.info("auction started: %s (%d players, %d teams)",
                    state.name, len(state.players), len(state.teams))
        return self._move_to(self.next_pending_index(0))

    def advance(self) -> bool:
        """결과 처리 후 호출. 경매가 계속되면 True"""
        state = self.state
        if not state.is_started:
            raise AuctionStateError("경매가 시작되지 않았습니다.")
        if state.is_completed:
            return False
        return self._move_to(self.next_pending_index(state.current_index))

    def end_auction(self):
        if not self.state.is_started:
            raise AuctionStateError("경매가 시작되지 않았습니다.")
        if self.state.is_completed:
            return
        logger.info("auction ended by operator")
        self._complete()

    # ───────────────────────── 내부 ─────────────────────────
    def _move_to(self, idx: Optional[int]) -> bool:
        state = self.state
        if idx is None:
            if self._requeue_unsold():
                return True
            self._complete()
            return False

        if self.is_exhausted():
            logger.info("no team can take any remaining player")
            self._complete()
            return False

        state.current_index = idx
        state.round.reset(active=True, timer=state.settings.timer_duration)
        logger.debug("now auctioning #%d %s", idx, state.players[idx].name)
        return True

    def _requeue_unsold(self) -> bool:
        state = self.state
        if not state.settings.enable_unsold_return or state.unsold_rounds_left <= 0:
            return False

        unsold = self.unsold_players()
        if not unsold or self.all_rosters_full() or not self.anyone_can_afford(unsold):
            return False

        for p in unsold:
            p.is_unsold = False
        unsold_ids = {p.id for p in unsold}
        head = [p for p in state.players if p.id not in unsold_ids]
        tail = list(unsold)
        self.rng.shuffle(tail)

        state.players = head + tail
        state.unsold_rounds_left -= 1
        state.current_index = len(head)
        state.round.reset(active=True, timer=state.settings.timer_duration)
        logger.info("unsold return round: %d players re-queued", len(tail))
        return True

    def _complete(self):
        state = self.state
        state.is_completed = True
        state.round.reset(active=False)
        state.round.hold_advance = False
        logger.info("auction completed: %s", state.name)
        if self.on_complete:
            self.on_complete()

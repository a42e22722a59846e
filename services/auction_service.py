import csv
import io
import logging
import random
import uuid
from typing import Callable, Iterable, List, Optional

from models.entities import AuctionState, AuctionSettings, Player, Team
from models.view_format import norm
from services import budget
from services.errors import AuctionStateError, BidResult
from services.history import UndoHistory
from services.ledger import BidLedger
from services.resolver import OutcomeResolver
from services.sequencer import Sequencer
from services.timer import ItemTimer
from utils.format import norm_optional
import config as CFG

logger = logging.getLogger(__name__)


class AuctionService:
    """
    경매 코어의 단일 진입점.
    - 모든 상태 변경은 여기 메서드로만 (운영자 1명, 순차 호출 가정)
    - 변경 후 subscribe()로 등록한 콜백에 (service, action) 전달
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.history = UndoHistory()
        self.timer: Optional[ItemTimer] = None
        self.channel_id: Optional[int] = None
        self._listeners: List[Callable[["AuctionService", str], None]] = []
        self._complete_listeners: List[Callable[["AuctionService"], None]] = []
        self.state = AuctionState(id="auction-1", name="Untitled Auction")
        self._bind()

    def _bind(self):
        self.ledger = BidLedger(self.state, self.history)
        self.sequencer = Sequencer(self.state, self.rng, on_complete=self._fire_complete)
        self.resolver = OutcomeResolver(self.state)

    def reset_all(self):
        """경매 전체 상태 초기화"""
        self._stop_timer()
        self.history.clear()
        self.channel_id = None
        self.state = AuctionState(id="auction-1", name="Untitled Auction")
        self._bind()
        self._notify("reset")

    def ensure_channel(self, channel_id: int) -> bool:
        if not CFG.ENFORCE_SINGLE_CHANNEL:
            return True
        if self.channel_id is None:
            self.channel_id = channel_id
        return self.channel_id == channel_id

    # ───────────────────────── 관찰 ─────────────────────────
    def subscribe(self, callback: Callable[["AuctionService", str], None]):
        self._listeners.append(callback)

    def on_complete(self, callback: Callable[["AuctionService"], None]):
        self._complete_listeners.append(callback)

    def _notify(self, action: str):
        for cb in self._listeners:
            cb(self, action)

    def _fire_complete(self):
        self._stop_timer()
        for cb in self._complete_listeners:
            cb(self)

    # ───────────────────────── 등록 ─────────────────────────
    def _require_not_started(self):
        if self.state.is_started:
            raise AuctionStateError("이미 경매 시작")

    def add_team(self, name: str) -> Team:
        self._require_not_started()
        name = (name or "").strip()
        if not name:
            raise ValueError("팀명 누락")
        if self.find_team(name):
            raise ValueError(f"이미 등록된 팀: {name}")
        s = self.state.settings
        team = Team(
            id=f"team-{len(self.state.teams) + 1}",
            name=name,
            budget=s.team_budget,
            remaining_budget=s.team_budget,
            max_players=s.players_per_team,
        )
        self.state.teams.append(team)
        return team

    def add_player(self, name, base_price=None, role=None, rating=None, is_captain=False) -> Player:
        self._require_not_started()
        name = norm_optional(name)
        if not name:
            raise ValueError("선수 이름 누락")
        if base_price is not None and base_price <= 0:
            raise ValueError("기본가는 0보다 커야 합니다.")
        player = Player(
            id=f"player-{len(self.state.players) + 1}",
            name=name,
            base_price=base_price,
            role=norm_optional(role),
            rating=rating,
            is_captain=bool(is_captain),
        )
        self.state.players.append(player)
        return player

    def setup(
        self,
        name: str,
        team_names: Iterable[str],
        players: Iterable[Player],
        settings: Optional[AuctionSettings] = None,
    ) -> AuctionState:
        """팀/선수/설정을 한 번에 등록 (기존 상태는 폐기)"""
        self._stop_timer()
        self.history.clear()
        self.state = AuctionState(id=f"auction-{uuid.uuid4().hex[:8]}", name=name,
                                  settings=settings or AuctionSettings())
        self._bind()
        for t in team_names:
            self.add_team(t)
        seen = set()
        for p in players:
            if p.id in seen:
                raise ValueError(f"중복 선수 id: {p.id}")
            seen.add(p.id)
            self.state.players.append(p)
        return self.state

    def _validate_setup(self):
        s = self.state.settings
        if not self.state.teams:
            raise ValueError("등록된 팀이 없습니다.")
        if not self.state.players:
            raise ValueError("등록된 선수가 없습니다.")
        if s.team_budget <= 0 or s.players_per_team <= 0:
            raise ValueError("팀 예산/인원 오류")
        if s.minimum_bid <= 0 or s.bid_increment <= 0:
            raise ValueError("최소 입찰가/입찰 단위 오류")
        if s.enable_timer and s.timer_duration <= 0:
            raise ValueError("제한 시간 오류")

    def _assign_captains(self):
        captains = [p for p in self.state.players if p.is_captain]
        if not captains:
            return
        if len(captains) != len(self.state.teams):
            # 주장 수가 팀 수와 다르면 주장 기능 전체 무시 (일반 선수로 경매)
            logger.warning("captain count %d != team count %d; captain flags ignored",
                           len(captains), len(self.state.teams))
            return
        for team, cap in zip(self.state.teams, captains):
            cap.sold_price = 0
            cap.team_id = team.id
            team.players.append(cap.id)
            logger.info("captain %s assigned to %s", cap.name, team.name)

    # ───────────────────────── 진행 ─────────────────────────
    def start(self, settings: Optional[AuctionSettings] = None) -> bool:
        self._require_not_started()
        if settings is not None:
            self.state.settings = settings
        self._validate_setup()

        s = self.state.settings
        for t in self.state.teams:
            t.budget = s.team_budget
            t.remaining_budget = s.team_budget
            t.max_players = s.players_per_team
            t.players = []
        for p in self.state.players:
            p.sold_price = None
            p.team_id = None
            p.is_unsold = False

        self.rng.shuffle(self.state.players)
        self._assign_captains()
        self.history.clear()

        active = self.sequencer.start()
        if active:
            self._restart_timer()
        self._notify("start")
        return active

    def place_bid(self, team_id: str, amount: Optional[int] = None) -> BidResult:
        """amount 생략 시 빠른 입찰 (다음 최소 입찰가)"""
        if amount is None:
            amount = self.ledger.quick_bid_amount(team_id)
            if amount is None:
                return BidResult.reject(self.ledger.check_bid(team_id, 0))

        result = self.ledger.place_bid(team_id, int(amount))
        if result.accepted:
            self._restart_timer()
            self._notify("bid")
        return result

    def pass_team(self, team_id: str) -> bool:
        ok = self.ledger.pass_team(team_id)
        if ok:
            self._notify("pass")
        return ok

    def resolve_sold(self) -> Player:
        player = self.resolver.sell()
        self._after_resolution()
        self._notify("sold")
        return player

    def resolve_unsold(self) -> Player:
        player = self.resolver.mark_unsold()
        self._after_resolution()
        self._notify("unsold")
        return player

    def expire_current_item(self) -> Optional[Player]:
        """제한 시간 만료: 최고 입찰이 있으면 낙찰, 없으면 유찰"""
        if self.current_item() is None or not self.state.round.is_active:
            return None
        if self.state.round.highest_bid is not None:
            return self.resolve_sold()
        return self.resolve_unsold()

    def _after_resolution(self):
        # 확정된 결과는 되돌리기 대상이 아님
        self.history.clear()
        if self.state.round.hold_advance:
            self._stop_timer()
            return
        self._advance()

    def _advance(self):
        if self.sequencer.advance():
            self._restart_timer()
        else:
            self._stop_timer()

    def hold_advance(self):
        """다음 선수 표시 전 연출 구간: 결과 확정 후 자동 진행 보류"""
        self.state.round.hold_advance = True

    def release_advance(self) -> bool:
        state = self.state
        state.round.hold_advance = False
        if state.is_started and not state.is_completed and self.current_item() is None:
            self._advance()
            self._notify("advance")
        return state.is_started and not state.is_completed

    def undo(self) -> bool:
        entry = self.history.pop()
        if entry is None:
            return False
        self.state = entry.state
        self._bind()
        self._restart_timer(self.state.round.timer or None)
        logger.info("undo: %s", entry.action)
        self._notify("undo")
        return True

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def end_auction(self):
        self.sequencer.end_auction()
        self._stop_timer()
        self._notify("end")

    def restart(self):
        """결과/예산을 모두 되돌리고 시작 전 상태로 (순서는 다음 시작 때 다시 섞음)"""
        self._stop_timer()
        self.history.clear()
        state = self.state
        for t in state.teams:
            t.players = []
            t.remaining_budget = t.budget
        for p in state.players:
            p.sold_price = None
            p.team_id = None
            p.is_unsold = False
        state.current_index = 0
        state.is_started = False
        state.is_completed = False
        state.round.reset(active=False)
        state.round.hold_advance = False
        self._notify("restart")

    def load_state(self, state: AuctionState):
        """저장된 스냅샷으로 재개"""
        self._stop_timer()
        self.history.clear()
        self.state = state
        self._bind()
        if state.is_started and not state.is_completed and self.current_item() is None:
            # 결과 확정 후 연출 대기 중에 저장된 스냅샷: 보류를 풀고 다음 선수로
            state.round.hold_advance = False
            self._advance()
        elif state.round.is_active and self.current_item() is not None:
            self._restart_timer(state.round.timer or None)
        self._notify("load")

    # ───────────────────────── 타이머 ─────────────────────────
    def attach_timer(self, tick_seconds: float = 1.0) -> ItemTimer:
        self.timer = ItemTimer(
            duration=self.state.settings.timer_duration,
            on_expire=self.expire_current_item,
            on_tick=self._on_tick,
            tick_seconds=tick_seconds,
        )
        return self.timer

    def _on_tick(self, remaining: int):
        self.state.round.timer = remaining
        self._notify("tick")

    def _restart_timer(self, duration: Optional[int] = None):
        if self.timer is None:
            return
        s = self.state.settings
        if not s.enable_timer or not self.state.round.is_active:
            self.timer.cancel()
            return
        self.timer.duration = s.timer_duration
        self.timer.restart(duration)

    def _stop_timer(self):
        if self.timer is not None:
            self.timer.cancel()

    # ───────────────────────── 조회 ─────────────────────────
    def current_item(self) -> Optional[Player]:
        return self.state.current_player()

    def team(self, team_id: str) -> Optional[Team]:
        return self.state.team_by_id(team_id)

    def find_team(self, name_or_id: str) -> Optional[Team]:
        target = norm(name_or_id)
        for t in self.state.teams:
            if norm(t.name) == target or t.id == name_or_id:
                return t
        return None

    def eligible_teams(self) -> List[Team]:
        player = self.current_item()
        rnd = self.state.round
        if player is None or not rnd.is_active:
            return []
        s = self.state.settings
        return [t for t in self.state.teams if budget.is_eligible(t, player, rnd, s)]

    def max_bid(self, team_id: str) -> int:
        team = self.team(team_id)
        if team is None:
            return 0
        return budget.max_bid(team, self.state.settings.minimum_bid)

    def min_bid(self) -> Optional[int]:
        player = self.current_item()
        if player is None:
            return None
        return budget.min_bid_for(player, self.state.round, self.state.settings)

    def all_rosters_full(self) -> bool:
        return self.sequencer.all_rosters_full()

    def summary(self) -> dict:
        players = self.state.players
        return {
            "total_players": len(players),
            "sold_players": sum(1 for p in players if p.is_sold),
            "unsold_players": sum(1 for p in players if p.is_unsold),
            "pending_players": sum(1 for p in players if p.is_pending),
            "total_spent": sum(t.spent for t in self.state.teams),
        }

    def export_csv_bytes(self) -> bytes:
        out = io.StringIO()
        writer = csv.writer(out)
        writer.writerow(["팀명", "선수", "역할", "평점", "낙찰가", "주장"])

        for team in self.state.teams:
            for pid in team.players:
                p = self.state.player_by_id(pid)
                if not p:
                    writer.writerow([team.name, pid, "", "", "", ""])
                    continue
                rating = "" if p.rating is None else p.rating
                writer.writerow([team.name, p.name, p.role or "", rating, p.sold_price,
                                 "Y" if p.is_captain else ""])

        for p in self.state.players:
            if p.is_unsold:
                writer.writerow(["", p.name, p.role or "", "" if p.rating is None else p.rating, "유찰", ""])

        return out.getvalue().encode("utf-8-sig")

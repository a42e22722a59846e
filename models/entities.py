from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
import datetime

import config as CFG


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class PlayerStatus(str, Enum):
    PENDING = "대기"
    SOLD = "낙찰"
    UNSOLD = "유찰"


@dataclass
class Player:
    id: str
    name: str
    base_price: Optional[int] = None
    role: Optional[str] = None
    rating: Optional[float] = None
    is_captain: bool = False
    sold_price: Optional[int] = None
    team_id: Optional[str] = None
    is_unsold: bool = False

    @property
    def is_sold(self) -> bool:
        return self.sold_price is not None

    @property
    def is_pending(self) -> bool:
        return self.sold_price is None and not self.is_unsold

    @property
    def status(self) -> PlayerStatus:
        if self.is_sold:
            return PlayerStatus.SOLD
        if self.is_unsold:
            return PlayerStatus.UNSOLD
        return PlayerStatus.PENDING


@dataclass
class Team:
    id: str
    name: str
    budget: int
    remaining_budget: int
    max_players: int
    players: List[str] = field(default_factory=list)  # 낙찰 순서대로 선수 id

    @property
    def spent(self) -> int:
        return self.budget - self.remaining_budget

    @property
    def slots_left(self) -> int:
        return self.max_players - len(self.players)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.max_players


@dataclass(frozen=True)
class Bid:
    team_id: str
    amount: int
    timestamp: datetime.datetime


@dataclass
class AuctionSettings:
    minimum_bid: int = CFG.MINIMUM_BID
    bid_increment: int = CFG.BID_INCREMENT
    players_per_team: int = CFG.PLAYERS_PER_TEAM
    team_budget: int = CFG.TEAM_BUDGET
    enable_unsold_return: bool = CFG.ENABLE_UNSOLD_RETURN
    unsold_return_rounds: int = CFG.UNSOLD_RETURN_ROUNDS
    enable_timer: bool = CFG.ENABLE_TIMER
    timer_duration: int = CFG.TIMER_DURATION_SEC


@dataclass
class RoundState:
    bids: List[Bid] = field(default_factory=list)
    highest_bid: Optional[Bid] = None
    passed_teams: List[str] = field(default_factory=list)
    is_active: bool = False
    hold_advance: bool = False
    timer: int = 0

    def reset(self, active: bool, timer: int = 0):
        """현재 선수 라운드 초기화 (hold_advance는 유지)"""
        self.bids = []
        self.highest_bid = None
        self.passed_teams = []
        self.is_active = active
        self.timer = timer


@dataclass
class AuctionState:
    id: str
    name: str
    settings: AuctionSettings = field(default_factory=AuctionSettings)
    players: List[Player] = field(default_factory=list)   # 경매 순서
    teams: List[Team] = field(default_factory=list)
    current_index: int = 0
    is_started: bool = False
    is_completed: bool = False
    round: RoundState = field(default_factory=RoundState)
    unsold_rounds_left: int = 0
    created_at: datetime.datetime = field(default_factory=utcnow)

    def team_by_id(self, team_id: str) -> Optional[Team]:
        for t in self.teams:
            if t.id == team_id:
                return t
        return None

    def player_by_id(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def current_player(self) -> Optional[Player]:
        if not self.is_started or self.is_completed:
            return None
        if not (0 <= self.current_index < len(self.players)):
            return None
        p = self.players[self.current_index]
        return p if p.is_pending else None

"""
경매 상태 저장/복원 (JSON)

스냅샷 형태:
    {items[], bidders[], cursor, isStarted, isCompleted, roundState, settings, ...}
날짜/시간은 ISO-8601 문자열로 저장하며 복원 시 그대로 돌아와야 한다.
코어는 이 모듈을 모르고, 운영 계층이 subscribe()/on_complete()로 연결한다.
"""
import datetime
import json
import logging
import os
import uuid
from dataclasses import dataclass
from typing import List, Optional

from models.entities import (
    AuctionSettings,
    AuctionState,
    Bid,
    Player,
    RoundState,
    Team,
    utcnow,
)
from services.errors import AuctionStateError

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def _dt_out(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt_in(value: Optional[str]) -> Optional[datetime.datetime]:
    return datetime.datetime.fromisoformat(value) if value else None


def _bid_to_dict(b: Bid) -> dict:
    return {"teamId": b.team_id, "amount": b.amount, "timestamp": _dt_out(b.timestamp)}


def _bid_from_dict(d: Optional[dict]) -> Optional[Bid]:
    if d is None:
        return None
    return Bid(team_id=d["teamId"], amount=d["amount"], timestamp=_dt_in(d["timestamp"]))


def state_to_dict(state: AuctionState) -> dict:
    s = state.settings
    rnd = state.round
    return {
        "version": SNAPSHOT_VERSION,
        "id": state.id,
        "name": state.name,
        "createdAt": _dt_out(state.created_at),
        "settings": {
            "minimumBid": s.minimum_bid,
            "bidIncrement": s.bid_increment,
            "playersPerTeam": s.players_per_team,
            "teamBudget": s.team_budget,
            "enableUnsoldPlayerReturn": s.enable_unsold_return,
            "unsoldPlayerReturnRound": s.unsold_return_rounds,
            "enableTimer": s.enable_timer,
            "timerDuration": s.timer_duration,
        },
        "items": [
            {
                "id": p.id,
                "name": p.name,
                "basePrice": p.base_price,
                "role": p.role,
                "rating": p.rating,
                "isCaptain": p.is_captain,
                "soldPrice": p.sold_price,
                "teamId": p.team_id,
                "isUnsold": p.is_unsold,
            }
            for p in state.players
        ],
        "bidders": [
            {
                "id": t.id,
                "name": t.name,
                "budget": t.budget,
                "remainingBudget": t.remaining_budget,
                "maxPlayers": t.max_players,
                "players": list(t.players),
            }
            for t in state.teams
        ],
        "cursor": state.current_index,
        "isStarted": state.is_started,
        "isCompleted": state.is_completed,
        "unsoldRoundsLeft": state.unsold_rounds_left,
        "roundState": {
            "currentBids": [_bid_to_dict(b) for b in rnd.bids],
            "highestBid": _bid_to_dict(rnd.highest_bid) if rnd.highest_bid else None,
            "passedTeams": list(rnd.passed_teams),
            "isActive": rnd.is_active,
            "holdAdvance": rnd.hold_advance,
            "timer": rnd.timer,
        },
    }


def state_from_dict(d: dict) -> AuctionState:
    version = d.get("version", SNAPSHOT_VERSION)
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"지원하지 않는 저장 형식 버전: {version}")

    s = d.get("settings", {})
    defaults = AuctionSettings()
    settings = AuctionSettings(
        minimum_bid=s.get("minimumBid", defaults.minimum_bid),
        bid_increment=s.get("bidIncrement", defaults.bid_increment),
        players_per_team=s.get("playersPerTeam", defaults.players_per_team),
        team_budget=s.get("teamBudget", defaults.team_budget),
        enable_unsold_return=s.get("enableUnsoldPlayerReturn", defaults.enable_unsold_return),
        unsold_return_rounds=s.get("unsoldPlayerReturnRound", defaults.unsold_return_rounds),
        enable_timer=s.get("enableTimer", defaults.enable_timer),
        timer_duration=s.get("timerDuration", defaults.timer_duration),
    )

    players = [
        Player(
            id=p["id"],
            name=p["name"],
            base_price=p.get("basePrice"),
            role=p.get("role"),
            rating=p.get("rating"),
            is_captain=p.get("isCaptain", False),
            sold_price=p.get("soldPrice"),
            team_id=p.get("teamId"),
            is_unsold=p.get("isUnsold", False),
        )
        for p in d.get("items", [])
    ]
    teams = [
        Team(
            id=t["id"],
            name=t["name"],
            budget=t["budget"],
            remaining_budget=t["remainingBudget"],
            max_players=t["maxPlayers"],
            players=list(t.get("players", [])),
        )
        for t in d.get("bidders", [])
    ]

    r = d.get("roundState", {})
    rnd = RoundState(
        bids=[_bid_from_dict(b) for b in r.get("currentBids", [])],
        highest_bid=_bid_from_dict(r.get("highestBid")),
        passed_teams=list(r.get("passedTeams", [])),
        is_active=r.get("isActive", False),
        hold_advance=r.get("holdAdvance", False),
        timer=r.get("timer", 0),
    )

    state = AuctionState(
        id=d["id"],
        name=d.get("name", ""),
        settings=settings,
        players=players,
        teams=teams,
        current_index=d.get("cursor", 0),
        is_started=d.get("isStarted", False),
        is_completed=d.get("isCompleted", False),
        round=rnd,
        unsold_rounds_left=d.get("unsoldRoundsLeft", 0),
    )
    created = _dt_in(d.get("createdAt"))
    if created is not None:
        state.created_at = created
    return state


def dumps(state: AuctionState) -> str:
    return json.dumps(state_to_dict(state), ensure_ascii=False, indent=2)


def loads(text: str) -> AuctionState:
    return state_from_dict(json.loads(text))


def _write_atomic(path: str, text: str):
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(text)
    os.replace(tmp, path)


class StateStore:
    """진행 중 경매 1개를 파일에 저장 (재시작 후 이어서 진행)"""

    def __init__(self, path: str):
        self.path = path

    def save(self, state: AuctionState):
        _write_atomic(self.path, dumps(state))

    def load(self) -> Optional[AuctionState]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return loads(f.read())

    def clear(self):
        if os.path.exists(self.path):
            os.remove(self.path)


@dataclass
class SavedAuction:
    id: str
    auction: AuctionState
    completed_at: datetime.datetime
    total_players: int
    sold_players: int
    unsold_players: int
    total_spent: int


class AuctionArchive:
    """종료된 경매 기록"""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> List[dict]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, records: List[dict]):
        _write_atomic(self.path, json.dumps(records, ensure_ascii=False, indent=2))

    @staticmethod
    def _from_record(r: dict) -> SavedAuction:
        return SavedAuction(
            id=r["id"],
            auction=state_from_dict(r["auction"]),
            completed_at=_dt_in(r["completedAt"]),
            total_players=r["totalPlayers"],
            sold_players=r["soldPlayers"],
            unsold_players=r["unsoldPlayers"],
            total_spent=r["totalSpent"],
        )

    def save_completed(self, state: AuctionState) -> SavedAuction:
        if not state.is_completed:
            raise AuctionStateError("종료되지 않은 경매는 기록할 수 없습니다.")

        saved = SavedAuction(
            id=f"saved-{state.id}-{uuid.uuid4().hex[:8]}",
            auction=state,
            completed_at=utcnow(),
            total_players=len(state.players),
            sold_players=sum(1 for p in state.players if p.is_sold),
            unsold_players=sum(1 for p in state.players if p.is_unsold),
            total_spent=sum(t.spent for t in state.teams),
        )
        records = self._read()
        records.append({
            "id": saved.id,
            "auction": state_to_dict(state),
            "completedAt": _dt_out(saved.completed_at),
            "totalPlayers": saved.total_players,
            "soldPlayers": saved.sold_players,
            "unsoldPlayers": saved.unsold_players,
            "totalSpent": saved.total_spent,
        })
        self._write(records)
        logger.info("archived auction %s", saved.id)
        return saved

    def list(self) -> List[SavedAuction]:
        saved = [self._from_record(r) for r in self._read()]
        return sorted(saved, key=lambda s: s.completed_at, reverse=True)

    def load(self, saved_id: str) -> Optional[SavedAuction]:
        for r in self._read():
            if r["id"] == saved_id:
                return self._from_record(r)
        return None

    def delete(self, saved_id: str) -> bool:
        records = self._read()
        kept = [r for r in records if r["id"] != saved_id]
        if len(kept) == len(records):
            return False
        self._write(kept)
        return True

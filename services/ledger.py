import logging
import datetime
from typing import Optional

from models.entities import AuctionState, Bid, utcnow
from services.budget import max_bid, min_bid_for, spendable
from services.errors import BidRejection, BidResult
from services.history import UndoHistory

logger = logging.getLogger(__name__)


class BidLedger:
    """현재 선수에 대한 입찰/패스 기록"""

    def __init__(self, state: AuctionState, history: UndoHistory):
        self.state = state
        self.history = history

    def check_bid(self, team_id: str, amount: int) -> Optional[BidRejection]:
        state = self.state
        rnd = state.round
        player = state.current_player()
        if not rnd.is_active or player is None:
            return BidRejection.ROUND_INACTIVE

        team = state.team_by_id(team_id)
        if team is None:
            return BidRejection.UNKNOWN_TEAM
        if team.is_full:
            return BidRejection.ROSTER_FULL
        if team_id in rnd.passed_teams:
            return BidRejection.PASSED
        if rnd.highest_bid is not None and rnd.highest_bid.team_id == team_id:
            return BidRejection.ALREADY_HIGHEST
        if amount < min_bid_for(player, rnd, state.settings):
            return BidRejection.BELOW_MINIMUM
        if amount > team.remaining_budget:
            return BidRejection.INSUFFICIENT_BUDGET
        if amount > max_bid(team, state.settings.minimum_bid):
            return BidRejection.ABOVE_MAX_BID
        if amount > spendable(team, state.settings.minimum_bid):
            return BidRejection.RESERVE_SHORTFALL
        return None

    def place_bid(self, team_id: str, amount: int, now: Optional[datetime.datetime] = None) -> BidResult:
        reason = self.check_bid(team_id, amount)
        if reason is not None:
            logger.debug("bid refused: team=%s amount=%s reason=%s", team_id, amount, reason.name)
            return BidResult.reject(reason)

        team = self.state.team_by_id(team_id)
        self.history.push(self.state, f"입찰: {team.name} - {amount}")

        bid = Bid(team_id=team_id, amount=amount, timestamp=now or utcnow())
        rnd = self.state.round
        rnd.bids.append(bid)
        rnd.highest_bid = bid
        rnd.timer = self.state.settings.timer_duration
        logger.debug("bid accepted: team=%s amount=%s", team_id, amount)
        return BidResult(True, None, bid)

    def pass_team(self, team_id: str) -> bool:
        rnd = self.state.round
        if not rnd.is_active or self.state.team_by_id(team_id) is None:
            return False
        if team_id not in rnd.passed_teams:
            rnd.passed_teams.append(team_id)
        return True

    def quick_bid_amount(self, team_id: str) -> Optional[int]:
        """빠른 입찰 금액: 다음 최소 입찰가, 단 팀 최대 입찰가를 넘지 않음"""
        player = self.state.current_player()
        team = self.state.team_by_id(team_id)
        if player is None or team is None:
            return None
        cap = max_bid(team, self.state.settings.minimum_bid)
        return min(min_bid_for(player, self.state.round, self.state.settings), cap)

import logging

from models.entities import AuctionState, Player
from services.errors import ItemNotSelectedError, NoBidsError

logger = logging.getLogger(__name__)


class OutcomeResolver:
    """현재 선수 낙찰/유찰 확정 (확정된 결과는 되돌리지 않음)"""

    def __init__(self, state: AuctionState):
        self.state = state

    def _current(self) -> Player:
        player = self.state.current_player()
        if player is None:
            raise ItemNotSelectedError("진행 중인 선수가 없습니다.")
        return player

    def sell(self) -> Player:
        player = self._current()
        top = self.state.round.highest_bid
        if top is None:
            raise NoBidsError(f"{player.name}: 입찰 내역이 없습니다.")

        team = self.state.team_by_id(top.team_id)
        if team is None:
            raise NoBidsError(f"{player.name}: 입찰 팀을 찾을 수 없습니다.")

        player.sold_price = top.amount
        player.team_id = team.id
        team.remaining_budget -= top.amount
        team.players.append(player.id)
        self.state.round.is_active = False
        logger.info("sold: %s -> %s for %d", player.name, team.name, top.amount)
        return player

    def mark_unsold(self) -> Player:
        player = self._current()
        player.is_unsold = True
        self.state.round.is_active = False
        logger.info("unsold: %s", player.name)
        return player

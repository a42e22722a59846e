"""
예산/입찰 자격 계산 (순수 함수)

- 팀은 남은 의무 슬롯을 최소 입찰가로 채울 수 있을 만큼의 예산을 항상 남겨야 한다.
- 마지막 한 자리만 남으면 잔여 예산 전부를 걸 수 있다.
"""
from typing import Optional

from models.entities import Player, Team, RoundState, AuctionSettings


def max_bid(team: Team, minimum_bid: int, roster_size: Optional[int] = None) -> int:
    size = team.max_players if roster_size is None else roster_size
    slots_left = size - len(team.players)
    if slots_left <= 1:
        return team.remaining_budget

    reserve = (slots_left - 1) * minimum_bid
    return max(team.remaining_budget - reserve, minimum_bid)


def spendable(team: Team, minimum_bid: int) -> int:
    """남은 자리 예약분을 뺀 실제 사용 가능 금액 (최소 입찰가 하한 없음)"""
    if team.slots_left <= 1:
        return team.remaining_budget
    return team.remaining_budget - (team.slots_left - 1) * minimum_bid


def opening_bid(player: Player, settings: AuctionSettings) -> int:
    return player.base_price or settings.minimum_bid


def min_bid_for(player: Player, round_state: RoundState, settings: AuctionSettings) -> int:
    if round_state.highest_bid is not None:
        return round_state.highest_bid.amount + settings.bid_increment
    return opening_bid(player, settings)


def is_eligible(team: Team, player: Player, round_state: RoundState, settings: AuctionSettings) -> bool:
    if team.is_full:
        return False
    if team.id in round_state.passed_teams:
        return False
    if team.remaining_budget < min_bid_for(player, round_state, settings):
        return False
    return True


def can_afford(team: Team, player: Player, settings: AuctionSettings) -> bool:
    """빈 자리가 있고, 시작가를 남은 자리 예약분을 지키면서 낼 수 있는지"""
    if team.is_full:
        return False
    price = opening_bid(player, settings)
    return price <= spendable(team, settings.minimum_bid)

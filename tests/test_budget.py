from models.entities import Bid, Player, RoundState, Team, utcnow
from services import budget
from tests.helpers import make_settings


def _team(remaining, max_players, owned=0, budget_total=None):
    return Team(
        id="t",
        name="T",
        budget=budget_total if budget_total is not None else remaining,
        remaining_budget=remaining,
        max_players=max_players,
        players=[f"x{i}" for i in range(owned)],
    )


def test_max_bid_keeps_reserve_for_remaining_slots():
    # 잔여 25, 남은 자리 2, 최소 10 → 15
    assert budget.max_bid(_team(25, 2), 10) == 15


def test_max_bid_last_slot_is_whole_budget():
    assert budget.max_bid(_team(40, 3, owned=2), 10) == 40


def test_max_bid_floor_is_minimum_bid():
    assert budget.max_bid(_team(20, 3), 10) == 10


def test_max_bid_roster_size_override():
    assert budget.max_bid(_team(100, 5), 10, roster_size=1) == 100


def test_spendable_has_no_floor():
    assert budget.spendable(_team(20, 3), 10) == 0
    assert budget.spendable(_team(40, 3, owned=2), 10) == 40


def test_min_bid_for_opening_and_following():
    settings = make_settings(minimum_bid=10, bid_increment=5)
    rnd = RoundState(is_active=True)
    assert budget.min_bid_for(Player(id="a", name="a"), rnd, settings) == 10
    assert budget.min_bid_for(Player(id="a", name="a", base_price=30), rnd, settings) == 30

    rnd.highest_bid = Bid(team_id="t", amount=40, timestamp=utcnow())
    assert budget.min_bid_for(Player(id="a", name="a", base_price=30), rnd, settings) == 45


def test_is_eligible():
    settings = make_settings()
    player = Player(id="a", name="a")
    rnd = RoundState(is_active=True)

    assert budget.is_eligible(_team(100, 2), player, rnd, settings)
    assert not budget.is_eligible(_team(100, 2, owned=2), player, rnd, settings)
    assert not budget.is_eligible(_team(5, 2), player, rnd, settings)

    rnd.passed_teams.append("t")
    assert not budget.is_eligible(_team(100, 2), player, rnd, settings)


def test_can_afford_respects_reserve():
    settings = make_settings()
    cheap = Player(id="a", name="a")
    pricey = Player(id="b", name="b", base_price=95)

    assert budget.can_afford(_team(100, 2), cheap, settings)
    assert not budget.can_afford(_team(100, 2), pricey, settings)
    assert budget.can_afford(_team(100, 2, owned=1), pricey, settings)
    assert not budget.can_afford(_team(100, 2, owned=2), cheap, settings)

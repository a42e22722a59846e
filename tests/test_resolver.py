import pytest

from models.entities import PlayerStatus
from services.errors import ItemNotSelectedError, NoBidsError
from tests.helpers import assert_invariants


def test_sell_without_bids_raises_and_keeps_state(build):
    svc = build()
    item = svc.current_item()
    cursor = svc.state.current_index

    with pytest.raises(NoBidsError):
        svc.resolve_sold()

    assert svc.current_item() is item
    assert svc.state.current_index == cursor
    assert item.is_pending
    assert svc.state.round.is_active


def test_resolve_before_start_raises(build):
    svc = build(start=False)
    with pytest.raises(ItemNotSelectedError):
        svc.resolve_sold()
    with pytest.raises(ItemNotSelectedError):
        svc.resolve_unsold()


def test_sell_awards_to_highest_bidder(build):
    svc = build()
    item = svc.current_item()
    svc.place_bid("team-1", 20)
    svc.place_bid("team-2", 40)

    sold = svc.resolve_sold()

    assert sold is item
    assert item.status is PlayerStatus.SOLD
    assert item.sold_price == 40
    assert item.team_id == "team-2"
    assert svc.team("team-2").players == [item.id]
    assert svc.team("team-2").remaining_budget == 60
    assert svc.team("team-1").remaining_budget == 100
    assert svc.current_item() is not item
    assert_invariants(svc.state)


def test_unsold_allowed_even_with_bids(build):
    svc = build()
    item = svc.current_item()
    svc.place_bid("team-1", 20)

    svc.resolve_unsold()

    assert item.status is PlayerStatus.UNSOLD
    assert item.team_id is None
    assert svc.team("team-1").remaining_budget == 100
    assert svc.team("team-1").players == []

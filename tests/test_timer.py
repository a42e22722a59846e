import asyncio
import random

import pytest

from services.auction_service import AuctionService
from services.timer import ItemTimer
from tests.helpers import make_players, make_settings


@pytest.mark.asyncio
async def test_timer_counts_down_then_expires():
    ticks, expired = [], []
    timer = ItemTimer(3, on_expire=lambda: expired.append(True), on_tick=ticks.append, tick_seconds=0.01)

    timer.restart()
    assert timer.running
    await asyncio.sleep(0.2)

    assert ticks == [2, 1, 0]
    assert expired == [True]
    assert not timer.running


@pytest.mark.asyncio
async def test_restart_resets_countdown():
    expired = []
    timer = ItemTimer(5, on_expire=lambda: expired.append(True), tick_seconds=0.05)

    timer.restart()
    await asyncio.sleep(0.12)
    timer.restart()
    assert timer.remaining == 5

    await asyncio.sleep(0.12)
    assert expired == []

    await asyncio.sleep(0.5)
    assert expired == [True]


@pytest.mark.asyncio
async def test_cancel_prevents_expiry():
    expired = []
    timer = ItemTimer(2, on_expire=lambda: expired.append(True), tick_seconds=0.01)
    timer.restart()
    timer.cancel()

    await asyncio.sleep(0.1)
    assert expired == []
    assert not timer.running


def _timed_service(players=1, duration=2, tick=0.01, **settings):
    svc = AuctionService(rng=random.Random(0))
    svc.setup("timed", ["A", "B"], make_players(players),
              make_settings(enable_timer=True, timer_duration=duration, **settings))
    svc.attach_timer(tick_seconds=tick)
    return svc


@pytest.mark.asyncio
async def test_expiry_without_bids_marks_unsold_and_moves_on():
    svc = _timed_service(players=1, unsold_return_rounds=1)
    assert svc.start()
    item = svc.current_item()
    assert svc.timer.running

    # 만료 → 유찰 → 재경매 → 다시 만료 → 종료
    await asyncio.sleep(0.3)

    assert svc.state.is_completed
    assert item.is_unsold
    assert not svc.timer.running


@pytest.mark.asyncio
async def test_expiry_sells_to_highest_bid():
    svc = _timed_service(players=1)
    svc.start()
    assert svc.place_bid("team-2", 40)

    await asyncio.sleep(0.3)

    assert svc.state.is_completed
    assert svc.team("team-2").remaining_budget == 60


@pytest.mark.asyncio
async def test_bid_restarts_countdown():
    svc = _timed_service(players=1, duration=3, tick=0.1)
    ticks = []
    svc.subscribe(lambda s, action: action == "tick" and ticks.append(s.state.round.timer))
    svc.start()

    await asyncio.sleep(0.15)
    assert ticks == [2]

    assert svc.place_bid("team-1", 10)
    assert svc.timer.remaining == 3
    assert svc.state.round.timer == 3
    assert not svc.state.is_completed

    await asyncio.sleep(0.6)
    assert svc.state.is_completed
    assert svc.current_item() is None
    assert svc.team("team-1").remaining_budget == 90


@pytest.mark.asyncio
async def test_timer_disabled_never_starts():
    svc = AuctionService(rng=random.Random(0))
    svc.setup("untimed", ["A"], make_players(2), make_settings(enable_timer=False))
    svc.attach_timer(tick_seconds=0.01)
    svc.start()

    assert not svc.timer.running
    await asyncio.sleep(0.05)
    assert not svc.state.is_completed


@pytest.mark.asyncio
async def test_undo_resumes_countdown_from_snapshot():
    svc = _timed_service(players=2, duration=30, tick=10)
    svc.start()
    svc.state.round.timer = 12

    assert svc.place_bid("team-1", 10)
    assert svc.timer.remaining == 30

    assert svc.undo()
    assert svc.state.round.timer == 12
    assert svc.timer.remaining == 12
    assert svc.timer.running
    svc.timer.cancel()

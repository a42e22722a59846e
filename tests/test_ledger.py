from services.errors import BidRejection


def test_accepted_bid_becomes_highest(build):
    svc = build()
    result = svc.place_bid("team-1", 20)

    assert result
    assert result.bid.team_id == "team-1"
    assert svc.state.round.highest_bid == result.bid
    assert svc.state.round.bids == [result.bid]
    assert svc.min_bid() == 30
    assert svc.can_undo()


def test_bid_before_start_is_rejected(build):
    svc = build(start=False)
    result = svc.place_bid("team-1", 20)
    assert not result
    assert result.reason is BidRejection.ROUND_INACTIVE


def test_unknown_team_rejected(build):
    svc = build()
    assert svc.place_bid("team-9", 20).reason is BidRejection.UNKNOWN_TEAM


def test_below_minimum_rejected(build):
    svc = build()
    assert svc.place_bid("team-1", 5).reason is BidRejection.BELOW_MINIMUM

    assert svc.place_bid("team-1", 20)
    # 최고가 + 입찰 단위 미만
    assert svc.place_bid("team-2", 25).reason is BidRejection.BELOW_MINIMUM
    assert svc.place_bid("team-2", 30)


def test_current_highest_bidder_cannot_raise_itself(build):
    svc = build()
    assert svc.place_bid("team-1", 20)
    assert svc.place_bid("team-1", 30).reason is BidRejection.ALREADY_HIGHEST


def test_budget_and_max_bid_limits(build):
    svc = build()
    # 잔여 100, 남은 자리 2 → 최대 90
    assert svc.max_bid("team-1") == 90
    assert svc.place_bid("team-1", 150).reason is BidRejection.INSUFFICIENT_BUDGET
    assert svc.place_bid("team-1", 95).reason is BidRejection.ABOVE_MAX_BID
    assert svc.place_bid("team-1", 90)


def test_reserve_shortfall_when_max_bid_floor_applies(build):
    svc = build()
    team = svc.team("team-1")
    team.max_players = 3
    team.budget = team.remaining_budget = 20
    # max_bid는 하한(최소 입찰가)인 10이지만, 10을 쓰면 나머지 두 자리를 채울 수 없음
    assert svc.max_bid("team-1") == 10
    assert svc.place_bid("team-1", 10).reason is BidRejection.RESERVE_SHORTFALL


def test_passed_team_cannot_bid(build):
    svc = build()
    assert svc.pass_team("team-1")
    assert svc.place_bid("team-1", 20).reason is BidRejection.PASSED
    assert svc.team("team-1") not in svc.eligible_teams()


def test_pass_is_idempotent(build):
    svc = build()
    assert svc.pass_team("team-1")
    assert svc.pass_team("team-1")
    assert svc.state.round.passed_teams == ["team-1"]


def test_pass_unknown_team_or_inactive_round(build):
    svc = build()
    assert not svc.pass_team("team-9")

    idle = build(start=False)
    assert not idle.pass_team("team-1")


def test_full_roster_rejected(build):
    svc = build(players_per_team=1)
    assert svc.place_bid("team-1", 10)
    svc.resolve_sold()

    assert svc.team("team-1").is_full
    assert svc.place_bid("team-1", 10).reason is BidRejection.ROSTER_FULL
    assert svc.place_bid("team-2", 10)


def test_quick_bid_uses_next_minimum(build):
    svc = build()
    first = svc.place_bid("team-1")
    assert first.bid.amount == 10
    second = svc.place_bid("team-2")
    assert second.bid.amount == 20


def test_quick_bid_capped_at_max_bid(build):
    svc = build()
    assert svc.place_bid("team-1", 90)
    assert svc.ledger.quick_bid_amount("team-2") == 90
    assert svc.place_bid("team-2").reason is BidRejection.BELOW_MINIMUM


def test_quick_bid_unknown_team(build):
    svc = build()
    assert svc.place_bid("team-9").reason is BidRejection.UNKNOWN_TEAM


def test_accepted_bid_resets_round_timer(build):
    svc = build(timer_duration=30)
    svc.state.round.timer = 3
    assert svc.place_bid("team-1", 10)
    assert svc.state.round.timer == 30


def test_rejected_bid_leaves_state_untouched(build):
    svc = build()
    assert svc.place_bid("team-1", 20)
    before = len(svc.history)

    assert not svc.place_bid("team-2", 15)
    assert len(svc.history) == before
    assert svc.state.round.highest_bid.amount == 20
    assert len(svc.state.round.bids) == 1

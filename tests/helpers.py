from models.entities import AuctionSettings, Player


def make_settings(**overrides) -> AuctionSettings:
    values = dict(
        minimum_bid=10,
        bid_increment=10,
        players_per_team=2,
        team_budget=100,
        enable_unsold_return=True,
        unsold_return_rounds=1,
        enable_timer=False,
        timer_duration=30,
    )
    values.update(overrides)
    return AuctionSettings(**values)


def make_players(count, base_price=None, captains=0):
    return [
        Player(id=f"p{i + 1}", name=f"Player {i + 1}", base_price=base_price, is_captain=i < captains)
        for i in range(count)
    ]


def assert_invariants(state):
    for team in state.teams:
        owned = [state.player_by_id(pid) for pid in team.players]
        assert team.remaining_budget + sum(p.sold_price for p in owned) == team.budget
        assert team.remaining_budget >= 0
        assert len(team.players) <= team.max_players
        assert all(p.team_id == team.id for p in owned)
    for p in state.players:
        assert not (p.is_sold and p.is_unsold)



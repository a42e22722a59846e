import random

import pytest

from services.auction_service import AuctionService
from tests.helpers import make_players, make_settings


@pytest.fixture
def build():
    """팀 A(team-1), B(team-2) 기본 경매 생성 (타이머 꺼짐)"""

    def _build(team_names=("A", "B"), players=None, start=True, seed=7, **settings):
        service = AuctionService(rng=random.Random(seed))
        service.setup(
            "Test Auction",
            team_names,
            players if players is not None else make_players(4),
            make_settings(**settings),
        )
        if start:
            service.start()
        return service

    return _build

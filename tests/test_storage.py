import json

import pytest

from services import storage
from services.errors import AuctionStateError
from services.storage import AuctionArchive, StateStore


def _mid_auction(build):
    svc = build()
    svc.place_bid("team-1", 40)
    svc.resolve_sold()
    svc.resolve_unsold()
    svc.place_bid("team-2", 10)
    svc.pass_team("team-1")
    return svc


def test_snapshot_round_trip(build):
    state = _mid_auction(build).state
    data = storage.state_to_dict(state)
    restored = storage.state_from_dict(data)

    assert restored == state
    assert restored.round.highest_bid.timestamp == state.round.highest_bid.timestamp
    assert restored.created_at.tzinfo is not None
    assert storage.state_to_dict(restored) == data


def test_snapshot_uses_camel_case_keys(build):
    data = json.loads(storage.dumps(_mid_auction(build).state))

    assert {"items", "bidders", "cursor", "isStarted", "isCompleted", "roundState", "settings"} <= set(data)
    assert data["roundState"]["passedTeams"] == ["team-1"]
    assert data["roundState"]["highestBid"]["teamId"] == "team-2"
    assert isinstance(data["createdAt"], str)


def test_unknown_version_rejected(build):
    data = storage.state_to_dict(build().state)
    data["version"] = 99
    with pytest.raises(ValueError):
        storage.state_from_dict(data)


def test_state_store_save_load_clear(build, tmp_path):
    store = StateStore(str(tmp_path / "data" / "state.json"))
    assert store.load() is None

    state = _mid_auction(build).state
    store.save(state)
    assert store.load() == state

    store.clear()
    assert store.load() is None
    store.clear()


def test_archive_only_accepts_completed(build, tmp_path):
    archive = AuctionArchive(str(tmp_path / "archive.json"))
    with pytest.raises(AuctionStateError):
        archive.save_completed(build().state)
    assert archive.list() == []


def test_archive_list_load_delete(build, tmp_path):
    archive = AuctionArchive(str(tmp_path / "archive.json"))

    first = _mid_auction(build)
    first.end_auction()
    saved_first = archive.save_completed(first.state)

    second = build()
    second.end_auction()
    saved_second = archive.save_completed(second.state)

    assert saved_first.total_players == 4
    assert saved_first.sold_players == 1
    assert saved_first.unsold_players == 1
    assert saved_first.total_spent == 40

    listed = archive.list()
    assert {s.id for s in listed} == {saved_first.id, saved_second.id}
    assert listed[0].completed_at >= listed[1].completed_at

    loaded = archive.load(saved_first.id)
    assert loaded.auction == first.state
    assert archive.load("missing") is None

    assert archive.delete(saved_first.id)
    assert not archive.delete(saved_first.id)
    assert [s.id for s in archive.list()] == [saved_second.id]

import pytest

from models.entities import Player, Team
from models.view_format import fmt_player_line, fmt_team_line
from utils.format import (
    norm_optional,
    parse_flag,
    parse_int_optional,
    parse_player_row,
    split_semicolon,
)


def test_norm_optional():
    assert norm_optional(None) is None
    assert norm_optional("  ") is None
    assert norm_optional("없음") is None
    assert norm_optional(" MID ") == "MID"


def test_split_semicolon_pads_and_requires():
    assert split_semicolon("홍길동;150", 1, 5) == ["홍길동", "150", "", "", ""]
    with pytest.raises(ValueError):
        split_semicolon(" ", 2, 5)


def test_parse_numbers_and_flags():
    assert parse_int_optional("1,000") == 1000
    assert parse_int_optional("") is None
    with pytest.raises(ValueError):
        parse_int_optional("abc")
    assert parse_flag("주장")
    assert parse_flag("Y")
    assert not parse_flag("")
    assert not parse_flag("n")


def test_parse_player_row():
    assert parse_player_row(["홍길동", "150", "MID", "4.5", "y"]) == {
        "name": "홍길동",
        "base_price": 150,
        "role": "MID",
        "rating": 4.5,
        "is_captain": True,
    }
    assert parse_player_row(["김철수"]) == {
        "name": "김철수",
        "base_price": None,
        "role": None,
        "rating": None,
        "is_captain": False,
    }


def test_player_and_team_lines():
    p = Player(id="p1", name="홍길동", base_price=150, role="MID", rating=4.5)
    assert fmt_player_line(p) == "**홍길동** / MID / 평점:4.5 / 기본가:150P (대기)"

    p.sold_price, p.team_id = 200, "t1"
    assert fmt_player_line(p, "A") == "**홍길동** / MID / 평점:4.5 / 기본가:150P (낙찰 · A · 200P)"

    team = Team(id="t1", name="A", budget=1000, remaining_budget=800, max_players=5, players=["p1"])
    assert fmt_team_line(team, 770) == "[A] 인원 1/5 / 잔여 800P (사용 200P) / 최대 입찰 770P"

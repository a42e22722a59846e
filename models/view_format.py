# models/view_format.py
from __future__ import annotations


def norm(s: str) -> str:
    return (s or "").strip().lower()


def fmt_points(amount) -> str:
    return f"{amount}P" if amount is not None else "-"


def fmt_player_line(p, team_name: str | None = None) -> str:
    """
    선수: 이름 / 역할 / 평점 / 기본가 (상태)
    """
    role = getattr(p, "role", None) or "-"
    rating = getattr(p, "rating", None)
    rating_str = "-" if rating is None else f"{rating:g}"
    base = f"**{p.name}** / {role} / 평점:{rating_str} / 기본가:{fmt_points(p.base_price)}"
    if getattr(p, "is_captain", False) and p.sold_price == 0:
        return f"{base} (주장 · {team_name or ''})"
    if p.is_sold:
        return f"{base} ({p.status.value} · {team_name or ''} · {fmt_points(p.sold_price)})"
    return f"{base} ({p.status.value})"


def fmt_team_line(team, max_bid: int | None = None) -> str:
    """
    [팀명] 인원 n/m / 잔여 P (최대 입찰 P)
    """
    line = (f"[{team.name}] 인원 {len(team.players)}/{team.max_players} / "
            f"잔여 {fmt_points(team.remaining_budget)} (사용 {fmt_points(team.spent)})")
    if max_bid is not None:
        line += f" / 최대 입찰 {fmt_points(max_bid)}"
    return line


def fmt_current_round(service) -> str:
    state = service.state
    p = service.current_item()
    if p is None:
        return "진행 중인 선수가 없습니다."
    top = state.round.highest_bid
    if top is None:
        top_str = f"입찰 없음 (시작가 {fmt_points(service.min_bid())})"
    else:
        team = state.team_by_id(top.team_id)
        top_str = f"최고 {fmt_points(top.amount)} — {team.name if team else top.team_id}"
    lines = [
        f"🏏 {fmt_player_line(p)}",
        f"💰 {top_str} / 다음 최소 {fmt_points(service.min_bid())}",
    ]
    if state.settings.enable_timer:
        lines.append(f"⏳ {state.round.timer}초")
    if state.round.passed_teams:
        names = [state.team_by_id(t).name for t in state.round.passed_teams if state.team_by_id(t)]
        lines.append("패스: " + ", ".join(names))
    return "\n".join(lines)

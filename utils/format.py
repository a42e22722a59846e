from typing import Optional, List


def norm_optional(s: Optional[str]) -> Optional[str]:
    if s is None:
        return None
    v = s.strip()
    if v == "" or v.lower() in {"null", "none", "없음"}:
        return None
    return v


def split_semicolon(payload: str, expected_min: int, expected_max: int) -> List[str]:
    parts = [p.strip() for p in payload.split(";")]
    if len(parts) < expected_min:
        raise ValueError("필수 항목이 부족합니다.")
    if len(parts) < expected_max:
        parts += [""] * (expected_max - len(parts))
    return parts[:expected_max]


def parse_int_optional(s: Optional[str]) -> Optional[int]:
    v = norm_optional(s)
    if v is None:
        return None
    return int(v.replace(",", ""))


def parse_float_optional(s: Optional[str]) -> Optional[float]:
    v = norm_optional(s)
    if v is None:
        return None
    return float(v)


def parse_flag(s: Optional[str]) -> bool:
    v = norm_optional(s)
    return v is not None and v.lower() in {"y", "yes", "true", "1", "o", "주장"}


def parse_player_row(parts: List[str]) -> dict:
    """이름;기본가;역할;평점;주장 → add_player 인자"""
    name, base_price, role, rating, captain = (list(parts) + [""] * 5)[:5]
    return {
        "name": name,
        "base_price": parse_int_optional(base_price),
        "role": norm_optional(role),
        "rating": parse_float_optional(rating),
        "is_captain": parse_flag(captain),
    }

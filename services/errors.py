from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.entities import Bid


class AuctionError(Exception):
    """Base class for auction-specific errors."""
    pass


class AuctionStateError(AuctionError):
    pass


class ItemNotSelectedError(AuctionError):
    pass


class NoBidsError(AuctionError):
    pass


class BidRejection(str, Enum):
    ROUND_INACTIVE = "진행 중인 경매가 없습니다."
    UNKNOWN_TEAM = "해당 팀이 없습니다."
    ROSTER_FULL = "팀 인원이 가득 찼습니다."
    PASSED = "이번 선수는 이미 패스했습니다."
    ALREADY_HIGHEST = "이미 최고 입찰자입니다."
    BELOW_MINIMUM = "최소 입찰가보다 낮습니다."
    INSUFFICIENT_BUDGET = "잔여 예산을 초과했습니다."
    ABOVE_MAX_BID = "최대 입찰 가능 금액을 초과했습니다."
    RESERVE_SHORTFALL = "남은 자리를 최소 입찰가로 채울 예산이 부족해집니다."


@dataclass(frozen=True)
class BidResult:
    accepted: bool
    reason: Optional[BidRejection] = None
    bid: Optional[Bid] = None

    def __bool__(self) -> bool:
        return self.accepted

    @classmethod
    def reject(cls, reason: BidRejection) -> "BidResult":
        return cls(False, reason, None)

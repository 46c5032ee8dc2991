"""Rejections raised by the auction coordinator.

Every rejection is expected and recoverable; none of them leave the lot or
the entity store partially mutated.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class RuleReason(str, Enum):
    SOLVENCY = "solvency"
    TIER_CAP = "tier_cap"
    QUOTA_RESERVE = "quota_reserve"
    TIER_FLOOR = "tier_floor"


class AuctionRejection(ValueError):
    code = "rejected"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class NotFound(AuctionRejection):
    code = "not_found"


class InvalidState(AuctionRejection):
    code = "invalid_state"


class RuleViolation(AuctionRejection):
    code = "rule_violation"

    def __init__(self, reason: RuleReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["reason"] = self.reason.value
        return payload


class IncrementTooSmall(AuctionRejection):
    code = "increment_too_small"


class InsufficientBidders(AuctionRejection):
    code = "insufficient_bidders"


class DuplicateBidder(AuctionRejection):
    code = "duplicate_bidder"


class AlreadyExists(AuctionRejection):
    code = "already_exists"

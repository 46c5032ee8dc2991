"""Pure bid admissibility checks.

Nothing in here touches shared state: every function works on the snapshots
it is handed, so the coordinator re-runs :func:`admissible` against a fresh
read of the store on each attempt.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..auction.errors import RuleReason
from ..auction.models import Bidder, Item, ItemStatus, squad_of
from .policy import RulePolicy


@dataclass(frozen=True)
class Verdict:
    ok: bool
    reason: RuleReason | None = None
    message: str = ""

    @classmethod
    def accept(cls) -> Verdict:
        return cls(ok=True)

    @classmethod
    def reject(cls, reason: RuleReason, message: str) -> Verdict:
        return cls(ok=False, reason=reason, message=message)


def admissible(
    bidder: Bidder,
    item: Item,
    price: int,
    all_items: Iterable[Item],
    policy: RulePolicy,
) -> Verdict:
    items = list(all_items)
    squad = squad_of(bidder.id, items)

    if price > bidder.remaining_budget:
        return Verdict.reject(
            RuleReason.SOLVENCY,
            f"bid {price} exceeds remaining budget {bidder.remaining_budget}",
        )

    if item.category is policy.tier_cap_category:
        spent = sum(
            member.sold_price or 0
            for member in squad
            if member.category is policy.tier_cap_category
        )
        if spent + price > policy.tier_cap:
            return Verdict.reject(
                RuleReason.TIER_CAP,
                f"category {item.category.value} spend {spent} + {price} exceeds cap {policy.tier_cap}",
            )

    budget_after = bidder.remaining_budget - price
    reserve = quota_reserve(squad, item, policy)
    if budget_after < reserve:
        return Verdict.reject(
            RuleReason.QUOTA_RESERVE,
            f"must reserve {reserve} for remaining squad requirements, budget after bid {budget_after}",
        )

    if _floor_tier_exhausted(item, items, policy):
        if len(squad) + 1 >= policy.floor_squad_threshold and budget_after < policy.floor_amount:
            return Verdict.reject(
                RuleReason.TIER_FLOOR,
                f"category {policy.floor_category.value} exhausted: must keep {policy.floor_amount} "
                f"once squad reaches {policy.floor_squad_threshold}",
            )

    return Verdict.accept()


def quota_reserve(squad: list[Item], item: Item, policy: RulePolicy) -> int:
    """Cheapest cost of completing the minimum squad after winning ``item``."""
    open_slots = policy.squad_size - len(squad) - 1
    if open_slots <= 0:
        return 0
    categories = [member.category for member in squad] + [item.category]
    reserve = 0
    specific = 0
    for requirement in policy.requirements:
        needed = max(0, requirement.minimum - requirement.count(categories))
        specific += needed
        reserve += needed * policy.requirement_price(requirement)
    generic = max(0, open_slots - specific)
    return reserve + generic * policy.cheapest_price


def _floor_tier_exhausted(item: Item, items: list[Item], policy: RulePolicy) -> bool:
    remaining = [
        candidate
        for candidate in items
        if candidate.category is policy.floor_category
        and candidate.status is ItemStatus.AVAILABLE
    ]
    if not remaining:
        return True
    return len(remaining) == 1 and remaining[0].id == item.id

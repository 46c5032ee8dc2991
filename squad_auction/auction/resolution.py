"""Outcomes applied to items and ledgers when a lot closes."""

from __future__ import annotations

from dataclasses import dataclass

from ..rules.policy import RulePolicy
from .errors import RuleReason, RuleViolation
from .models import Bidder, Category, Item, ItemStatus

REQUEUE_ROUND = 2


@dataclass(frozen=True)
class SaleOutcome:
    item_id: str
    bidder_id: str
    price: int
    remaining_budget: int


@dataclass(frozen=True)
class NoSaleOutcome:
    item_id: str
    status: ItemStatus
    category: Category
    base_price: int
    round: int

    @property
    def downgraded(self) -> bool:
        return self.round == 1 and self.status is ItemStatus.AVAILABLE


def settle_sale(item: Item, bidder: Bidder, price: int) -> SaleOutcome:
    if price <= 0:
        raise ValueError("sale price must be positive")
    if price > bidder.remaining_budget:
        raise RuleViolation(
            RuleReason.SOLVENCY,
            f"sale price {price} exceeds remaining budget {bidder.remaining_budget}",
        )
    return SaleOutcome(
        item_id=item.id,
        bidder_id=bidder.id,
        price=price,
        remaining_budget=bidder.remaining_budget - price,
    )


def resolve_no_sale(item: Item, policy: RulePolicy) -> NoSaleOutcome:
    if item.round < REQUEUE_ROUND:
        return NoSaleOutcome(
            item_id=item.id,
            status=ItemStatus.AVAILABLE,
            category=item.category,
            base_price=item.base_price,
            round=REQUEUE_ROUND,
        )
    category = item.category
    if category is Category.A:
        lower = category.downgrade()
        return NoSaleOutcome(
            item_id=item.id,
            status=ItemStatus.AVAILABLE,
            category=lower,
            base_price=policy.base_price(lower),
            round=1,
        )
    if category is Category.C:
        return NoSaleOutcome(
            item_id=item.id,
            status=ItemStatus.WITHDRAWN,
            category=category,
            base_price=item.base_price,
            round=item.round,
        )
    if category is Category.B:
        return NoSaleOutcome(
            item_id=item.id,
            status=ItemStatus.AVAILABLE,
            category=category,
            base_price=item.base_price,
            round=REQUEUE_ROUND,
        )
    raise ValueError(f"unknown category {category}")

"""Rule-set parameters: prices, increments, squad quotas and floors."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

from ..auction.models import Category

DEFAULT_BASE_PRICES: Mapping[Category, int] = MappingProxyType(
    {
        Category.A: 15000,
        Category.B: 8000,
        Category.C: 5000,
    }
)
DEFAULT_BIDDER_BUDGET = 130000


@dataclass(frozen=True)
class IncrementStep:
    """Bid step for one category: ``low`` below ``threshold``, ``high`` from it."""

    threshold: int
    low: int
    high: int

    def at(self, price: int) -> int:
        return self.low if price < self.threshold else self.high


DEFAULT_INCREMENTS: Mapping[Category, IncrementStep] = MappingProxyType(
    {
        Category.A: IncrementStep(threshold=20000, low=1000, high=2000),
        Category.B: IncrementStep(threshold=10000, low=500, high=1000),
        Category.C: IncrementStep(threshold=10000, low=500, high=1000),
    }
)


@dataclass(frozen=True)
class QuotaRequirement:
    """At least ``minimum`` squad members drawn from ``categories``."""

    categories: frozenset[Category]
    minimum: int

    def count(self, categories: list[Category]) -> int:
        return sum(1 for category in categories if category in self.categories)


@dataclass(frozen=True)
class RulePolicy:
    name: str
    requirements: tuple[QuotaRequirement, ...]
    floor_amount: int
    base_prices: Mapping[Category, int] = field(default_factory=lambda: DEFAULT_BASE_PRICES)
    increments: Mapping[Category, IncrementStep] = field(
        default_factory=lambda: DEFAULT_INCREMENTS
    )
    squad_size: int = 10
    tier_cap: int = 60000
    tier_cap_category: Category = Category.A
    floor_category: Category = Category.B
    floor_squad_threshold: int = 6
    default_budget: int = DEFAULT_BIDDER_BUDGET

    def __post_init__(self) -> None:
        missing = [c.value for c in Category if c not in self.base_prices]
        if missing:
            raise ValueError(f"policy {self.name} missing base price for {missing}")
        missing = [c.value for c in Category if c not in self.increments]
        if missing:
            raise ValueError(f"policy {self.name} missing increment for {missing}")

    def base_price(self, category: Category) -> int:
        return self.base_prices[category]

    def increment(self, category: Category, price: int) -> int:
        return self.increments[category].at(price)

    @property
    def cheapest_price(self) -> int:
        return min(self.base_prices.values())

    def requirement_price(self, requirement: QuotaRequirement) -> int:
        return min(self.base_prices[category] for category in requirement.categories)


PER_TIER_POLICY = RulePolicy(
    name="per_tier",
    requirements=(
        QuotaRequirement(frozenset({Category.A}), 1),
        QuotaRequirement(frozenset({Category.B}), 3),
        QuotaRequirement(frozenset({Category.C}), 4),
    ),
    floor_amount=20000,
)

COMBINED_POLICY = RulePolicy(
    name="combined",
    requirements=(
        QuotaRequirement(frozenset({Category.A, Category.B}), 4),
        QuotaRequirement(frozenset({Category.C}), 4),
    ),
    floor_amount=25000,
)

POLICIES: Mapping[str, RulePolicy] = MappingProxyType(
    {
        PER_TIER_POLICY.name: PER_TIER_POLICY,
        COMBINED_POLICY.name: COMBINED_POLICY,
    }
)


def build_policy(name: str = "per_tier", **overrides: Any) -> RulePolicy:
    try:
        policy = POLICIES[name]
    except KeyError as exc:
        raise ValueError(f"unknown rule policy {name}") from exc
    updates = {key: value for key, value in overrides.items() if value is not None}
    if "base_prices" in updates:
        prices = dict(policy.base_prices)
        prices.update({Category(k): int(v) for k, v in updates["base_prices"].items()})
        updates["base_prices"] = MappingProxyType(prices)
    return replace(policy, **updates) if updates else policy

"""Unit tests for bid admissibility rules."""

from __future__ import annotations

import pytest

from factories import make_bidder, make_item, make_sold, make_squad
from squad_auction.auction.errors import RuleReason
from squad_auction.auction.models import Category
from squad_auction.rules import (
    COMBINED_POLICY,
    PER_TIER_POLICY,
    admissible,
    build_policy,
    quota_reserve,
)


def _spare_b_pool() -> list:
    return [make_item("spare-b1", "B"), make_item("spare-b2", "B")]


class TestSolvency:
    def test_bid_above_remaining_budget_rejected(self):
        bidder = make_bidder("falcons", remaining=10000)
        item = make_item("p1", "A")
        verdict = admissible(bidder, item, 15000, [item, *_spare_b_pool()], PER_TIER_POLICY)
        assert not verdict.ok
        assert verdict.reason is RuleReason.SOLVENCY

    def test_solvency_checked_before_tier_cap(self):
        bidder = make_bidder("falcons", remaining=1000)
        squad = [make_sold("a1", "A", "falcons", 60000)]
        item = make_item("p1", "A")
        verdict = admissible(bidder, item, 2000, [item, *squad], PER_TIER_POLICY)
        assert verdict.reason is RuleReason.SOLVENCY


class TestTierCap:
    def _setup(self):
        squad = [
            make_sold("a1", "A", "falcons", 30000),
            make_sold("a2", "A", "falcons", 29500),
            *make_squad("falcons", {"B": 3, "C": 4}),
        ]
        bidder = make_bidder("falcons", remaining=20000)
        item = make_item("p1", "A")
        return bidder, item, [item, *squad, *_spare_b_pool()]

    def test_exact_cap_is_allowed(self):
        bidder, item, items = self._setup()
        verdict = admissible(bidder, item, 500, items, PER_TIER_POLICY)
        assert verdict.ok

    def test_over_cap_rejected(self):
        bidder, item, items = self._setup()
        verdict = admissible(bidder, item, 1000, items, PER_TIER_POLICY)
        assert not verdict.ok
        assert verdict.reason is RuleReason.TIER_CAP
        assert "60000" in verdict.message

    def test_cap_ignores_lower_categories(self):
        bidder, _, items = self._setup()
        item = make_item("p2", "B")
        verdict = admissible(bidder, item, 1000, [*items, item], PER_TIER_POLICY)
        assert verdict.ok


class TestQuotaReserve:
    def test_reserve_for_empty_squad_buying_b(self):
        item = make_item("p1", "B")
        # needs A1 + B2 + C4 priced at base, plus two generic slots at the C price
        assert quota_reserve([], item, PER_TIER_POLICY) == 15000 + 16000 + 20000 + 10000

    def test_reserve_is_zero_for_final_slot(self):
        squad = make_squad("falcons", {"A": 1, "B": 3, "C": 5})
        assert quota_reserve(squad, make_item("p1", "C"), PER_TIER_POLICY) == 0

    def test_bid_leaving_reserve_intact_allowed(self):
        bidder = make_bidder("falcons")
        item = make_item("p1", "B")
        verdict = admissible(bidder, item, 69000, [item, *_spare_b_pool()], PER_TIER_POLICY)
        assert verdict.ok

    def test_bid_eating_into_reserve_rejected(self):
        bidder = make_bidder("falcons")
        item = make_item("p1", "B")
        verdict = admissible(bidder, item, 69500, [item, *_spare_b_pool()], PER_TIER_POLICY)
        assert not verdict.ok
        assert verdict.reason is RuleReason.QUOTA_RESERVE

    def test_combined_policy_reserves_less_for_b(self):
        bidder = make_bidder("falcons")
        item = make_item("p1", "B")
        assert quota_reserve([], item, COMBINED_POLICY) == 24000 + 20000 + 10000
        verdict = admissible(bidder, item, 69500, [item, *_spare_b_pool()], COMBINED_POLICY)
        assert verdict.ok


class TestEndOfTierFloor:
    def _squad(self):
        return make_squad("falcons", {"A": 1, "B": 2, "C": 4})

    def test_last_b_item_enforces_floor(self):
        bidder = make_bidder("falcons", remaining=35000)
        item = make_item("p1", "B")
        verdict = admissible(bidder, item, 16000, [item, *self._squad()], PER_TIER_POLICY)
        assert not verdict.ok
        assert verdict.reason is RuleReason.TIER_FLOOR

    def test_floor_boundary_allowed(self):
        bidder = make_bidder("falcons", remaining=35000)
        item = make_item("p1", "B")
        verdict = admissible(bidder, item, 15000, [item, *self._squad()], PER_TIER_POLICY)
        assert verdict.ok

    def test_floor_skipped_while_b_items_remain(self):
        bidder = make_bidder("falcons", remaining=35000)
        item = make_item("p1", "B")
        items = [item, *self._squad(), *_spare_b_pool()]
        verdict = admissible(bidder, item, 16000, items, PER_TIER_POLICY)
        assert verdict.ok

    def test_floor_applies_to_other_categories_once_b_exhausted(self):
        bidder = make_bidder("falcons", remaining=35000)
        item = make_item("p1", "C")
        verdict = admissible(bidder, item, 16000, [item, *self._squad()], PER_TIER_POLICY)
        assert verdict.reason is RuleReason.TIER_FLOOR

    def test_small_squad_is_exempt(self):
        bidder = make_bidder("falcons", remaining=130000)
        item = make_item("p1", "B")
        verdict = admissible(bidder, item, 8000, [item], PER_TIER_POLICY)
        assert verdict.ok

    def test_combined_policy_uses_higher_floor(self):
        bidder = make_bidder("falcons", remaining=35000)
        item = make_item("p1", "B")
        items = [item, *self._squad()]
        assert admissible(bidder, item, 11000, items, PER_TIER_POLICY).ok
        verdict = admissible(bidder, item, 11000, items, COMBINED_POLICY)
        assert verdict.reason is RuleReason.TIER_FLOOR


class TestPolicy:
    @pytest.mark.parametrize(
        ("category", "price", "expected"),
        [
            (Category.A, 15000, 1000),
            (Category.A, 19999, 1000),
            (Category.A, 20000, 2000),
            (Category.B, 9500, 500),
            (Category.B, 10000, 1000),
            (Category.C, 5000, 500),
        ],
    )
    def test_dynamic_increment(self, category, price, expected):
        assert PER_TIER_POLICY.increment(category, price) == expected

    def test_build_policy_applies_overrides(self):
        policy = build_policy("combined", tier_cap=50000, base_prices={"C": 4000})
        assert policy.tier_cap == 50000
        assert policy.base_price(Category.C) == 4000
        assert policy.base_price(Category.A) == 15000
        assert policy.floor_amount == 25000

    def test_build_policy_without_overrides_returns_named_policy(self):
        assert build_policy("per_tier") is PER_TIER_POLICY

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            build_policy("greedy")

"""Unit tests for lot closure outcomes."""

from __future__ import annotations

import pytest

from factories import make_bidder, make_item
from squad_auction.auction.errors import RuleReason, RuleViolation
from squad_auction.auction.models import Category, ItemStatus
from squad_auction.auction.resolution import resolve_no_sale, settle_sale
from squad_auction.rules import PER_TIER_POLICY


@pytest.mark.parametrize("category", ["A", "B", "C"])
def test_first_round_requeues_for_second_pass(category):
    outcome = resolve_no_sale(make_item("p1", category), PER_TIER_POLICY)
    assert outcome.status is ItemStatus.AVAILABLE
    assert outcome.round == 2
    assert outcome.category is Category(category)


def test_second_round_top_tier_is_downgraded():
    outcome = resolve_no_sale(make_item("p1", "A", round=2), PER_TIER_POLICY)
    assert outcome.status is ItemStatus.AVAILABLE
    assert outcome.category is Category.B
    assert outcome.base_price == 8000
    assert outcome.round == 1
    assert outcome.downgraded


def test_second_round_lowest_tier_is_withdrawn():
    outcome = resolve_no_sale(make_item("p1", "C", round=2), PER_TIER_POLICY)
    assert outcome.status is ItemStatus.WITHDRAWN
    assert outcome.category is Category.C


def test_second_round_middle_tier_stays_in_pool():
    outcome = resolve_no_sale(make_item("p1", "B", round=2), PER_TIER_POLICY)
    assert outcome.status is ItemStatus.AVAILABLE
    assert outcome.round == 2
    assert outcome.base_price == 8000
    assert not outcome.downgraded


def test_settle_sale_debits_ledger():
    outcome = settle_sale(make_item("p1", "A"), make_bidder("falcons"), 21000)
    assert outcome.remaining_budget == 109000
    assert outcome.bidder_id == "falcons"


def test_settle_sale_refuses_overdraft():
    with pytest.raises(RuleViolation) as excinfo:
        settle_sale(make_item("p1", "A"), make_bidder("falcons", remaining=5000), 6000)
    assert excinfo.value.reason is RuleReason.SOLVENCY

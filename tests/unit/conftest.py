from __future__ import annotations

import random
from unittest.mock import AsyncMock

import pytest

from squad_auction.auction.coordinator import AuctionCoordinator
from squad_auction.rules.policy import PER_TIER_POLICY
from squad_auction.storage.in_memory import InMemoryStorage


@pytest.fixture
def notifier():
    """Notifier double recording every broadcast."""
    return AsyncMock()


@pytest.fixture
def auction_factory(notifier):
    """Build a coordinator over an in-memory store holding the given entities."""

    async def build(items, bidders, *, policy=PER_TIER_POLICY, seed=7):
        store = InMemoryStorage()
        for item in items:
            await store.add_item(item)
        for bidder in bidders:
            await store.add_bidder(bidder)
        coordinator = AuctionCoordinator(store, notifier, policy, rng=random.Random(seed))
        return coordinator, store

    return build

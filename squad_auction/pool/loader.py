"""Item and bidder pool backed by YAML configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..auction.models import Bidder, Category, Item
from ..rules.policy import RulePolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemSeed:
    id: str
    name: str
    category: Category
    attributes: dict[str, Any] = field(default_factory=dict)

    def build(self, policy: RulePolicy) -> Item:
        return Item(
            id=self.id,
            name=self.name,
            category=self.category,
            base_price=policy.base_price(self.category),
            attributes=dict(self.attributes),
        )


@dataclass(frozen=True)
class BidderSeed:
    id: str
    name: str
    budget: int | None = None
    owner: str | None = None

    def build(self, policy: RulePolicy) -> Bidder:
        budget = self.budget if self.budget is not None else policy.default_budget
        return Bidder(id=self.id, name=self.name, initial_budget=budget, owner=self.owner)


class PoolDefinition:
    def __init__(self, config_path: Path) -> None:
        self._path = config_path
        self.items: tuple[ItemSeed, ...] = ()
        self.bidders: tuple[BidderSeed, ...] = ()
        self.reload()

    def reload(self) -> None:
        data = yaml.safe_load(self._path.read_text()) or {}
        items = []
        for entry in data.get("items", []):
            items.append(
                ItemSeed(
                    id=str(entry["id"]),
                    name=entry.get("name", str(entry["id"])),
                    category=Category(str(entry["category"]).upper()),
                    attributes=dict(entry.get("attributes") or {}),
                )
            )
        bidders = []
        for entry in data.get("bidders", []):
            budget = entry.get("budget")
            bidders.append(
                BidderSeed(
                    id=str(entry["id"]),
                    name=entry.get("name", str(entry["id"])),
                    budget=int(budget) if budget is not None else None,
                    owner=entry.get("owner"),
                )
            )
        ids = [seed.id for seed in items]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate item ids in {self._path}")
        ids = [seed.id for seed in bidders]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate bidder ids in {self._path}")
        self.items = tuple(items)
        self.bidders = tuple(bidders)


async def seed_store(store, pool: PoolDefinition, policy: RulePolicy) -> bool:
    """Load the pool into an empty store. Returns False if the store already has data."""
    if await store.list_items() or await store.list_bidders():
        logger.info("store already populated, skipping pool seed")
        return False
    for item_seed in pool.items:
        await store.add_item(item_seed.build(policy))
    for bidder_seed in pool.bidders:
        await store.add_bidder(bidder_seed.build(policy))
    logger.info(
        "seeded pool with %d items and %d bidders", len(pool.items), len(pool.bidders)
    )
    return True

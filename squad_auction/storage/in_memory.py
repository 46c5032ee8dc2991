"""In-memory storage backend for items and bidder ledgers."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from ..auction.models import Bidder, Category, Item, ItemStatus


class InMemoryStorage:
    def __init__(self) -> None:
        self._items: dict[str, dict] = {}
        self._bidders: dict[str, dict] = {}
        self._lock = asyncio.Lock()

    async def add_item(self, item: Item) -> Item:
        async with self._lock:
            self._items[item.id] = item.to_dict()
            return Item.from_dict(self._items[item.id])

    async def add_bidder(self, bidder: Bidder) -> Bidder:
        async with self._lock:
            self._bidders[bidder.id] = bidder.to_dict()
            return Bidder.from_dict(self._bidders[bidder.id])

    async def get_item(self, item_id: str) -> Item:
        async with self._lock:
            return self._item(item_id)

    async def list_items(self) -> list[Item]:
        async with self._lock:
            return [Item.from_dict(data) for data in self._items.values()]

    async def get_bidder(self, bidder_id: str) -> Bidder:
        async with self._lock:
            return self._bidder(bidder_id)

    async def list_bidders(self) -> list[Bidder]:
        async with self._lock:
            return [Bidder.from_dict(data) for data in self._bidders.values()]

    async def update_item(self, item: Item) -> Item:
        async with self._lock:
            self._item(item.id)
            self._items[item.id] = item.to_dict()
            return Item.from_dict(self._items[item.id])

    async def delete_item(self, item_id: str) -> None:
        async with self._lock:
            self._item(item_id)
            del self._items[item_id]

    async def update_bidder(self, bidder: Bidder) -> Bidder:
        async with self._lock:
            self._bidder(bidder.id)
            self._bidders[bidder.id] = bidder.to_dict()
            return Bidder.from_dict(self._bidders[bidder.id])

    async def delete_bidder(self, bidder_id: str) -> None:
        async with self._lock:
            self._bidder(bidder_id)
            del self._bidders[bidder_id]

    async def commit_sale(self, item_id: str, bidder_id: str, price: int) -> tuple[Item, Bidder]:
        async with self._lock:
            item = self._item(item_id).sold_to(bidder_id, price)
            bidder = self._bidder(bidder_id).debited(price)
            self._items[item_id] = item.to_dict()
            self._bidders[bidder_id] = bidder.to_dict()
            return item, bidder

    async def commit_no_sale(
        self,
        item_id: str,
        status: ItemStatus,
        category: Category,
        base_price: int,
        round: int,
    ) -> Item:
        async with self._lock:
            item = replace(
                self._item(item_id),
                status=status,
                category=category,
                base_price=base_price,
                round=round,
            )
            self._items[item_id] = item.to_dict()
            return item

    async def reset_all(self) -> tuple[list[Item], list[Bidder]]:
        async with self._lock:
            items = [Item.from_dict(data).restored() for data in self._items.values()]
            bidders = [Bidder.from_dict(data).restored() for data in self._bidders.values()]
            self._items = {item.id: item.to_dict() for item in items}
            self._bidders = {bidder.id: bidder.to_dict() for bidder in bidders}
            return items, bidders

    def _item(self, item_id: str) -> Item:
        try:
            return Item.from_dict(self._items[item_id])
        except KeyError as exc:
            raise KeyError(f"item {item_id} not found") from exc

    def _bidder(self, bidder_id: str) -> Bidder:
        try:
            return Bidder.from_dict(self._bidders[bidder_id])
        except KeyError as exc:
            raise KeyError(f"bidder {bidder_id} not found") from exc

"""Entity store backend factory."""

from __future__ import annotations

from typing import Protocol

from ..auction.models import Bidder, Category, Item, ItemStatus
from ..config import ServerConfig
from .in_memory import InMemoryStorage
from .postgres import PostgresStorage
from .redis import RedisStorage


class EntityStore(Protocol):
    """Durable items and bidder ledgers.

    Lookups raise ``KeyError`` for unknown ids. ``commit_sale`` updates the
    item and debits the bidder as one unit.
    """

    async def add_item(self, item: Item) -> Item: ...

    async def add_bidder(self, bidder: Bidder) -> Bidder: ...

    async def get_item(self, item_id: str) -> Item: ...

    async def list_items(self) -> list[Item]: ...

    async def get_bidder(self, bidder_id: str) -> Bidder: ...

    async def list_bidders(self) -> list[Bidder]: ...

    async def update_item(self, item: Item) -> Item: ...

    async def delete_item(self, item_id: str) -> None: ...

    async def update_bidder(self, bidder: Bidder) -> Bidder: ...

    async def delete_bidder(self, bidder_id: str) -> None: ...

    async def commit_sale(self, item_id: str, bidder_id: str, price: int) -> tuple[Item, Bidder]: ...

    async def commit_no_sale(
        self,
        item_id: str,
        status: ItemStatus,
        category: Category,
        base_price: int,
        round: int,
    ) -> Item: ...

    async def reset_all(self) -> tuple[list[Item], list[Bidder]]: ...


def build_storage(config: ServerConfig) -> EntityStore:
    backend = config.storage.backend
    options = dict(config.storage.options)
    if backend == "in_memory":
        return InMemoryStorage()
    if backend == "redis":
        return RedisStorage(**options)
    if backend == "postgres":
        return PostgresStorage(**options)
    raise ValueError(f"unknown storage backend {backend}")

"""Postgres storage backend leveraging asyncpg."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

import asyncpg
import orjson

from ..auction.models import Bidder, Category, Item, ItemStatus


class PostgresStorage:
    def __init__(self, *, dsn: str | None = None, **connect_kwargs: Any) -> None:
        if not dsn and not connect_kwargs:
            raise ValueError("postgres connection details missing")
        self._dsn = dsn
        self._connect_kwargs = connect_kwargs
        self._pool: asyncpg.Pool | None = None

    def _encode(self, payload: dict[str, Any]) -> str:
        return orjson.dumps(payload).decode()

    def _decode(self, value: Any) -> dict[str, Any]:
        if isinstance(value, (bytes, bytearray)):
            value = value.decode()
        if isinstance(value, str):
            return orjson.loads(value)
        return value

    async def _ensure_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(dsn=self._dsn, **self._connect_kwargs)
            async with self._pool.acquire() as conn:
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS auction_items (
                        item_id TEXT PRIMARY KEY,
                        data JSONB NOT NULL
                    );
                    CREATE TABLE IF NOT EXISTS auction_bidders (
                        bidder_id TEXT PRIMARY KEY,
                        data JSONB NOT NULL
                    );
                    """
                )
        return self._pool

    async def add_item(self, item: Item) -> Item:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """INSERT INTO auction_items(item_id, data) VALUES($1, $2)
                   ON CONFLICT (item_id) DO UPDATE SET data=EXCLUDED.data""",
                item.id,
                self._encode(item.to_dict()),
            )
        return item

    async def add_bidder(self, bidder: Bidder) -> Bidder:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """INSERT INTO auction_bidders(bidder_id, data) VALUES($1, $2)
                   ON CONFLICT (bidder_id) DO UPDATE SET data=EXCLUDED.data""",
                bidder.id,
                self._encode(bidder.to_dict()),
            )
        return bidder

    async def get_item(self, item_id: str) -> Item:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """SELECT data FROM auction_items WHERE item_id=$1""", item_id
            )
        if not row:
            raise KeyError(f"item {item_id} not found")
        return Item.from_dict(self._decode(row["data"]))

    async def get_bidder(self, bidder_id: str) -> Bidder:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """SELECT data FROM auction_bidders WHERE bidder_id=$1""", bidder_id
            )
        if not row:
            raise KeyError(f"bidder {bidder_id} not found")
        return Bidder.from_dict(self._decode(row["data"]))

    async def list_items(self) -> list[Item]:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch("SELECT data FROM auction_items ORDER BY item_id")
        return [Item.from_dict(self._decode(row["data"])) for row in rows]

    async def list_bidders(self) -> list[Bidder]:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch("SELECT data FROM auction_bidders ORDER BY bidder_id")
        return [Bidder.from_dict(self._decode(row["data"])) for row in rows]

    async def update_item(self, item: Item) -> Item:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            status = await conn.execute(
                """UPDATE auction_items SET data=$2 WHERE item_id=$1""",
                item.id,
                self._encode(item.to_dict()),
            )
        if status.endswith(" 0"):
            raise KeyError(f"item {item.id} not found")
        return item

    async def delete_item(self, item_id: str) -> None:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            status = await conn.execute(
                """DELETE FROM auction_items WHERE item_id=$1""", item_id
            )
        if status.endswith(" 0"):
            raise KeyError(f"item {item_id} not found")

    async def update_bidder(self, bidder: Bidder) -> Bidder:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            status = await conn.execute(
                """UPDATE auction_bidders SET data=$2 WHERE bidder_id=$1""",
                bidder.id,
                self._encode(bidder.to_dict()),
            )
        if status.endswith(" 0"):
            raise KeyError(f"bidder {bidder.id} not found")
        return bidder

    async def delete_bidder(self, bidder_id: str) -> None:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            status = await conn.execute(
                """DELETE FROM auction_bidders WHERE bidder_id=$1""", bidder_id
            )
        if status.endswith(" 0"):
            raise KeyError(f"bidder {bidder_id} not found")

    async def commit_sale(self, item_id: str, bidder_id: str, price: int) -> tuple[Item, Bidder]:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                item_row = await conn.fetchrow(
                    """SELECT data FROM auction_items WHERE item_id=$1 FOR UPDATE""",
                    item_id,
                )
                bidder_row = await conn.fetchrow(
                    """SELECT data FROM auction_bidders WHERE bidder_id=$1 FOR UPDATE""",
                    bidder_id,
                )
                if not item_row:
                    raise KeyError(f"item {item_id} not found")
                if not bidder_row:
                    raise KeyError(f"bidder {bidder_id} not found")
                item = Item.from_dict(self._decode(item_row["data"])).sold_to(bidder_id, price)
                bidder = Bidder.from_dict(self._decode(bidder_row["data"])).debited(price)
                await conn.execute(
                    """UPDATE auction_items SET data=$2 WHERE item_id=$1""",
                    item_id,
                    self._encode(item.to_dict()),
                )
                await conn.execute(
                    """UPDATE auction_bidders SET data=$2 WHERE bidder_id=$1""",
                    bidder_id,
                    self._encode(bidder.to_dict()),
                )
        return item, bidder

    async def commit_no_sale(
        self,
        item_id: str,
        status: ItemStatus,
        category: Category,
        base_price: int,
        round: int,
    ) -> Item:
        item = replace(
            await self.get_item(item_id),
            status=status,
            category=category,
            base_price=base_price,
            round=round,
        )
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """UPDATE auction_items SET data=$2 WHERE item_id=$1""",
                item_id,
                self._encode(item.to_dict()),
            )
        return item

    async def reset_all(self) -> tuple[list[Item], list[Bidder]]:
        items = [item.restored() for item in await self.list_items()]
        bidders = [bidder.restored() for bidder in await self.list_bidders()]
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(
                    """UPDATE auction_items SET data=$2 WHERE item_id=$1""",
                    [(item.id, self._encode(item.to_dict())) for item in items],
                )
                await conn.executemany(
                    """UPDATE auction_bidders SET data=$2 WHERE bidder_id=$1""",
                    [(bidder.id, self._encode(bidder.to_dict())) for bidder in bidders],
                )
        return items, bidders

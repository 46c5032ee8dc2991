"""Redis storage backend using redis-py asyncio client."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

import orjson
from redis import asyncio as aioredis
from redis.exceptions import WatchError

from ..auction.models import Bidder, Category, Item, ItemStatus


class RedisStorage:
    def __init__(self, *, url: str, prefix: str = "auction") -> None:
        if not url:
            raise ValueError("redis url missing")
        self._redis = aioredis.from_url(url)
        self._prefix = prefix.rstrip(":")

    def _item_key(self, item_id: str) -> str:
        return f"{self._prefix}:item:{item_id}"

    def _bidder_key(self, bidder_id: str) -> str:
        return f"{self._prefix}:bidder:{bidder_id}"

    @property
    def _item_index(self) -> str:
        return f"{self._prefix}:items"

    @property
    def _bidder_index(self) -> str:
        return f"{self._prefix}:bidders"

    async def add_item(self, item: Item) -> Item:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.set(self._item_key(item.id), orjson.dumps(item.to_dict()))
            pipe.sadd(self._item_index, item.id)
            await pipe.execute()
        return item

    async def add_bidder(self, bidder: Bidder) -> Bidder:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.set(self._bidder_key(bidder.id), orjson.dumps(bidder.to_dict()))
            pipe.sadd(self._bidder_index, bidder.id)
            await pipe.execute()
        return bidder

    async def get_item(self, item_id: str) -> Item:
        raw = await self._redis.get(self._item_key(item_id))
        if raw is None:
            raise KeyError(f"item {item_id} not found")
        return Item.from_dict(orjson.loads(raw))

    async def get_bidder(self, bidder_id: str) -> Bidder:
        raw = await self._redis.get(self._bidder_key(bidder_id))
        if raw is None:
            raise KeyError(f"bidder {bidder_id} not found")
        return Bidder.from_dict(orjson.loads(raw))

    async def list_items(self) -> list[Item]:
        payloads = await self._load_all(self._item_index, self._item_key)
        return [Item.from_dict(payload) for payload in payloads]

    async def list_bidders(self) -> list[Bidder]:
        payloads = await self._load_all(self._bidder_index, self._bidder_key)
        return [Bidder.from_dict(payload) for payload in payloads]

    async def update_item(self, item: Item) -> Item:
        await self._replace(self._item_key(item.id), item.to_dict(), f"item {item.id} not found")
        return item

    async def delete_item(self, item_id: str) -> None:
        await self._remove(
            self._item_index, self._item_key(item_id), item_id, f"item {item_id} not found"
        )

    async def update_bidder(self, bidder: Bidder) -> Bidder:
        await self._replace(
            self._bidder_key(bidder.id), bidder.to_dict(), f"bidder {bidder.id} not found"
        )
        return bidder

    async def delete_bidder(self, bidder_id: str) -> None:
        await self._remove(
            self._bidder_index, self._bidder_key(bidder_id), bidder_id, f"bidder {bidder_id} not found"
        )

    async def commit_sale(self, item_id: str, bidder_id: str, price: int) -> tuple[Item, Bidder]:
        item_key = self._item_key(item_id)
        bidder_key = self._bidder_key(bidder_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(item_key, bidder_key)
                    raw_item, raw_bidder = await pipe.mget(item_key, bidder_key)
                    if raw_item is None:
                        raise KeyError(f"item {item_id} not found")
                    if raw_bidder is None:
                        raise KeyError(f"bidder {bidder_id} not found")
                    item = Item.from_dict(orjson.loads(raw_item)).sold_to(bidder_id, price)
                    bidder = Bidder.from_dict(orjson.loads(raw_bidder)).debited(price)
                    pipe.multi()
                    pipe.set(item_key, orjson.dumps(item.to_dict()))
                    pipe.set(bidder_key, orjson.dumps(bidder.to_dict()))
                    await pipe.execute()
                    return item, bidder
                except WatchError:
                    continue

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
        await self._redis.set(self._item_key(item_id), orjson.dumps(item.to_dict()))
        return item

    async def reset_all(self) -> tuple[list[Item], list[Bidder]]:
        items = [item.restored() for item in await self.list_items()]
        bidders = [bidder.restored() for bidder in await self.list_bidders()]
        async with self._redis.pipeline(transaction=True) as pipe:
            for item in items:
                pipe.set(self._item_key(item.id), orjson.dumps(item.to_dict()))
            for bidder in bidders:
                pipe.set(self._bidder_key(bidder.id), orjson.dumps(bidder.to_dict()))
            await pipe.execute()
        return items, bidders

    async def _replace(self, key: str, payload: dict[str, Any], missing: str) -> None:
        # SET XX only writes when the key is already present
        written = await self._redis.set(key, orjson.dumps(payload), xx=True)
        if not written:
            raise KeyError(missing)

    async def _remove(self, index: str, key: str, member: str, missing: str) -> None:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.srem(index, member)
            removed, _ = await pipe.execute()
        if not removed:
            raise KeyError(missing)

    async def _load_all(self, index: str, key_for: Callable[[str], str]) -> list[dict[str, Any]]:
        members = await self._redis.smembers(index)
        ids = sorted(m.decode() if isinstance(m, bytes) else m for m in members)
        if not ids:
            return []
        values = await self._redis.mget([key_for(member) for member in ids])
        return [orjson.loads(value) for value in values if value]

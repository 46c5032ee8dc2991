"""State-change broadcast to auction observers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Protocol

from ..auction.models import Bidder, Item, Lot

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def on_lot_started(self, lot: Lot, item: Item) -> None: ...

    async def on_bid_placed(self, lot: Lot) -> None: ...

    async def on_match(self, lot: Lot) -> None: ...

    async def on_lottery_resolved(self, lot: Lot, winner: Bidder) -> None: ...

    async def on_lot_closed(self, lot: Lot, item: Item, bidder: Bidder | None) -> None: ...

    async def on_lot_reset(self, lot: Lot) -> None: ...

    async def on_full_reset(self, items: list[Item], bidders: list[Bidder]) -> None: ...

    async def on_pool_changed(self, kind: str, action: str, entity: dict[str, Any]) -> None: ...


class _PublisherProtocol:
    async def publish(self, event: dict[str, Any]) -> None:  # pragma: no cover - protocol
        raise NotImplementedError


class _LocalPublisher(_PublisherProtocol):
    async def publish(self, event: dict[str, Any]) -> None:
        lot = event.get("lot") or {}
        logger.info("[local-broadcast] event=%s lot=%s", event["event"], lot.get("item_id"))


class QueuePublisher(_PublisherProtocol):
    """Hands every event to in-process subscriber queues."""

    def __init__(self, maxsize: int = 100) -> None:
        self._maxsize = maxsize
        self._queues: set[asyncio.Queue] = set()

    @property
    def subscribers(self) -> int:
        return len(self._queues)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        self._queues.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._queues.discard(queue)

    async def publish(self, event: dict[str, Any]) -> None:
        for queue in list(self._queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("subscriber queue full, dropping event %s", event["event"])


class EventBroadcaster:
    def __init__(self, publishers: Iterable[str] = ("local",), *, queue_size: int = 100) -> None:
        self.queues = QueuePublisher(queue_size)
        self._publishers: list[_PublisherProtocol] = [self.queues]
        for name in publishers:
            if name == "local":
                self._publishers.append(_LocalPublisher())
            else:
                raise ValueError(f"unknown notifier publisher {name}")

    async def publish(self, event: dict[str, Any]) -> None:
        results = await asyncio.gather(
            *(publisher.publish(event) for publisher in self._publishers),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error("publisher failed for %s: %s", event["event"], result)

    async def on_lot_started(self, lot: Lot, item: Item) -> None:
        await self.publish({"event": "lot_started", "lot": lot.to_dict(), "item": item.to_dict()})

    async def on_bid_placed(self, lot: Lot) -> None:
        await self.publish({"event": "bid_placed", "lot": lot.to_dict(), "bidder_id": lot.leader_id})

    async def on_match(self, lot: Lot) -> None:
        await self.publish({"event": "bid_matched", "lot": lot.to_dict(), "bidder_id": lot.leader_id})

    async def on_lottery_resolved(self, lot: Lot, winner: Bidder) -> None:
        await self.publish(
            {"event": "lottery_resolved", "lot": lot.to_dict(), "winner": winner.to_dict()}
        )

    async def on_lot_closed(self, lot: Lot, item: Item, bidder: Bidder | None) -> None:
        await self.publish(
            {
                "event": "lot_closed",
                "lot": lot.to_dict(),
                "item": item.to_dict(),
                "bidder": bidder.to_dict() if bidder else None,
            }
        )

    async def on_lot_reset(self, lot: Lot) -> None:
        await self.publish({"event": "lot_reset", "lot": lot.to_dict()})

    async def on_full_reset(self, items: list[Item], bidders: list[Bidder]) -> None:
        await self.publish(
            {
                "event": "full_reset",
                "items": [item.to_dict() for item in items],
                "bidders": [bidder.to_dict() for bidder in bidders],
            }
        )

    async def on_pool_changed(self, kind: str, action: str, entity: dict[str, Any]) -> None:
        await self.publish(
            {"event": "pool_changed", "kind": kind, "action": action, kind: entity}
        )

"""Server-sent event feed over the broadcaster's subscriber queues."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator

from ..transport.canonical_json import canonical_dumps
from .notifier import QueuePublisher

logger = logging.getLogger(__name__)


def sse_frame(event: str, payload: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {canonical_dumps(payload).decode()}\n\n"


async def event_stream(
    request,
    coordinator,
    publisher: QueuePublisher,
    *,
    keepalive: float = 15.0,
) -> AsyncIterator[str]:
    """Yield a ``sync`` snapshot, then every broadcast event until the client leaves.

    The queue is subscribed before the snapshot is read so no event committed
    after the snapshot is missed.
    """
    queue = publisher.subscribe()
    logger.info("event stream opened subscribers=%d", publisher.subscribers)
    try:
        state = await coordinator.full_state()
        yield sse_frame(
            "sync",
            {
                "event": "sync",
                "lot": state["lot"].to_dict(),
                "items": [item.to_dict() for item in state["items"]],
                "bidders": [bidder.to_dict() for bidder in state["bidders"]],
            },
        )
        while not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield sse_frame(event["event"], event)
    finally:
        publisher.unsubscribe(queue)
        logger.info("event stream closed subscribers=%d", publisher.subscribers)

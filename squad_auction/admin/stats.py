"""Operational stats endpoint."""

from __future__ import annotations

from collections import Counter
from typing import Any

from fastapi import APIRouter, Depends, Request

from ..auction.coordinator import AuctionCoordinator

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_coordinator(request: Request) -> AuctionCoordinator:
    return request.app.state.coordinator


@router.get("/stats")
async def stats(coordinator: AuctionCoordinator = Depends(_get_coordinator)) -> dict[str, Any]:
    state = await coordinator.full_state()
    items = state["items"]
    bidders = state["bidders"]

    by_status: Counter[str] = Counter(item.status.value for item in items)
    available_by_category: Counter[str] = Counter(
        item.category.value for item in items if item.is_available
    )
    downgraded = sum(1 for item in items if item.category != item.original_category)
    sold_prices = [item.sold_price for item in items if item.sold_price is not None]
    spend_by_bidder = {bidder.id: bidder.spent for bidder in bidders}

    return {
        "total_items": len(items),
        "items_by_status": dict(by_status),
        "available_by_category": dict(available_by_category),
        "downgraded_items": downgraded,
        "total_spend": sum(sold_prices),
        "highest_sale": max(sold_prices, default=0),
        "spend_by_bidder": spend_by_bidder,
        "lot_active": state["lot"].active,
    }

"""Manage the item pool between lots."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from ..auction.coordinator import AuctionCoordinator
from ..auction.errors import AuctionRejection
from ..responses import rejection_to_http, validate_payload, whole_amount
from ..validation.validator import SchemaRegistry
from .auth import require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_coordinator(request: Request) -> AuctionCoordinator:
    return request.app.state.coordinator


def _get_schemas(request: Request) -> SchemaRegistry:
    return request.app.state.schema_registry


@router.get("/items")
async def items(coordinator: AuctionCoordinator = Depends(_get_coordinator)) -> list[dict[str, Any]]:
    state = await coordinator.full_state()
    return [item.to_dict() for item in state["items"]]


@router.post("/items", status_code=201)
async def create_item(
    payload: dict[str, Any] = Body(...),
    _: str = Depends(require_admin),
    schemas: SchemaRegistry = Depends(_get_schemas),
    coordinator: AuctionCoordinator = Depends(_get_coordinator),
) -> dict[str, Any]:
    validate_payload(schemas, "item_create", payload)
    try:
        item = await coordinator.add_item(
            payload["id"],
            payload["name"],
            payload["category"],
            base_price=whole_amount(payload, "base_price"),
            attributes=payload.get("attributes"),
        )
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return item.to_dict()


@router.put("/items/{item_id}")
async def update_item(
    item_id: str,
    payload: dict[str, Any] = Body(...),
    _: str = Depends(require_admin),
    schemas: SchemaRegistry = Depends(_get_schemas),
    coordinator: AuctionCoordinator = Depends(_get_coordinator),
) -> dict[str, Any]:
    validate_payload(schemas, "item_update", payload)
    try:
        item = await coordinator.update_item(
            item_id,
            name=payload.get("name"),
            category=payload.get("category"),
            base_price=whole_amount(payload, "base_price"),
            attributes=payload.get("attributes"),
        )
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return item.to_dict()


@router.delete("/items/{item_id}")
async def delete_item(
    item_id: str,
    _: str = Depends(require_admin),
    coordinator: AuctionCoordinator = Depends(_get_coordinator),
) -> dict[str, Any]:
    try:
        await coordinator.delete_item(item_id)
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return {"deleted": item_id}

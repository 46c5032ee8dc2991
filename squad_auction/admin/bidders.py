"""Expose and manage bidder ledgers and squads."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from ..auction.coordinator import AuctionCoordinator
from ..auction.errors import AuctionRejection, NotFound
from ..responses import rejection_to_http, validate_payload, whole_amount
from ..validation.validator import SchemaRegistry
from .auth import require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_coordinator(request: Request) -> AuctionCoordinator:
    return request.app.state.coordinator


def _get_schemas(request: Request) -> SchemaRegistry:
    return request.app.state.schema_registry


@router.get("/bidders")
async def bidders(coordinator: AuctionCoordinator = Depends(_get_coordinator)) -> list[dict[str, Any]]:
    state = await coordinator.full_state()
    squad_sizes: dict[str, int] = {}
    for item in state["items"]:
        if item.winner_id:
            squad_sizes[item.winner_id] = squad_sizes.get(item.winner_id, 0) + 1
    inventory = []
    for bidder in state["bidders"]:
        inventory.append(
            {
                "id": bidder.id,
                "name": bidder.name,
                "owner": bidder.owner,
                "initial_budget": bidder.initial_budget,
                "remaining_budget": bidder.remaining_budget,
                "spent": bidder.spent,
                "squad_size": squad_sizes.get(bidder.id, 0),
            }
        )
    return inventory


@router.get("/bidders/{bidder_id}/squad")
async def squad(
    bidder_id: str,
    coordinator: AuctionCoordinator = Depends(_get_coordinator),
) -> dict[str, Any]:
    try:
        summary = await coordinator.squad(bidder_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=exc.to_dict()) from exc
    return {
        "bidder": summary["bidder"].to_dict(),
        "squad": [item.to_dict() for item in summary["squad"]],
        "spent": summary["spent"],
        "counts": summary["counts"],
    }


@router.post("/bidders", status_code=201)
async def create_bidder(
    payload: dict[str, Any] = Body(...),
    _: str = Depends(require_admin),
    schemas: SchemaRegistry = Depends(_get_schemas),
    coordinator: AuctionCoordinator = Depends(_get_coordinator),
) -> dict[str, Any]:
    validate_payload(schemas, "bidder_create", payload)
    try:
        bidder = await coordinator.add_bidder(
            payload["id"],
            payload["name"],
            budget=whole_amount(payload, "budget"),
            owner=payload.get("owner"),
        )
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return bidder.to_dict()


@router.put("/bidders/{bidder_id}")
async def update_bidder(
    bidder_id: str,
    payload: dict[str, Any] = Body(...),
    _: str = Depends(require_admin),
    schemas: SchemaRegistry = Depends(_get_schemas),
    coordinator: AuctionCoordinator = Depends(_get_coordinator),
) -> dict[str, Any]:
    validate_payload(schemas, "bidder_update", payload)
    try:
        bidder = await coordinator.update_bidder(
            bidder_id,
            name=payload.get("name"),
            owner=payload.get("owner"),
            budget=whole_amount(payload, "budget"),
        )
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return bidder.to_dict()


@router.delete("/bidders/{bidder_id}")
async def delete_bidder(
    bidder_id: str,
    _: str = Depends(require_admin),
    coordinator: AuctionCoordinator = Depends(_get_coordinator),
) -> dict[str, Any]:
    try:
        await coordinator.delete_bidder(bidder_id)
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return {"deleted": bidder_id}

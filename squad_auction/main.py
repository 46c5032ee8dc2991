from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Body, Depends, FastAPI, Request
from fastapi.responses import StreamingResponse

from .admin import auth as admin_auth
from .admin import bidders as admin_bidders
from .admin import config as admin_config
from .admin import health as admin_health
from .admin import items as admin_items
from .admin import stats as admin_stats
from .auction.coordinator import AuctionCoordinator
from .auction.errors import AuctionRejection
from .config import RulesConfig, ServerConfig, get_pool_config_path, get_server_config
from .events.notifier import EventBroadcaster
from .events.stream import event_stream
from .pool import PoolDefinition, seed_store
from .responses import (
    format_closure,
    format_lot,
    rejection_to_http,
    validate_payload,
    whole_amount,
)
from .rules.policy import RulePolicy, build_policy
from .storage import build_storage
from .validation.validator import SchemaRegistry, get_schema_registry

logger = logging.getLogger(__name__)


def policy_from_config(rules: RulesConfig) -> RulePolicy:
    return build_policy(
        rules.policy,
        base_prices=rules.base_prices or None,
        tier_cap=rules.tier_cap,
        squad_size=rules.squad_size,
        floor_amount=rules.floor_amount,
        floor_squad_threshold=rules.floor_squad_threshold,
        default_budget=rules.default_budget,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    server_config = get_server_config()
    schema_registry = get_schema_registry()
    policy = policy_from_config(server_config.rules)
    storage = build_storage(server_config)
    notifier = EventBroadcaster(
        server_config.notifier.publishers,
        queue_size=server_config.notifier.subscriber_queue_size,
    )
    coordinator = AuctionCoordinator(
        storage,
        notifier,
        policy,
        rng=random.Random(server_config.rules.lottery_seed),
    )
    if server_config.seed_pool:
        await seed_store(storage, PoolDefinition(get_pool_config_path()), policy)

    app.state.server_config = server_config
    app.state.schema_registry = schema_registry
    app.state.storage = storage
    app.state.notifier = notifier
    app.state.coordinator = coordinator
    app.state.start_time = datetime.now(timezone.utc)

    yield

    await coordinator.drain()


app = FastAPI(
    title="Squad Auction Server",
    version="1.0.0",
    docs_url="/docs",
    lifespan=lifespan,
)

app.include_router(admin_health.router)
app.include_router(admin_stats.router)
app.include_router(admin_config.router)
app.include_router(admin_bidders.router)
app.include_router(admin_items.router)


# Dependency helpers ---------------------------------------------------------


def get_server_settings(request: Request) -> ServerConfig:
    return request.app.state.server_config


def get_schema_service(request: Request) -> SchemaRegistry:
    return request.app.state.schema_registry


def get_coordinator(request: Request) -> AuctionCoordinator:
    return request.app.state.coordinator


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.notifier


# Routes ---------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root(
    settings: ServerConfig = Depends(get_server_settings),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    return {
        "service": "squad-auction",
        "version": app.version,
        "storage_backend": settings.storage.backend,
        "rule_policy": coordinator.policy.name,
    }


@app.get("/auction/lot", tags=["auction"])
async def current_lot(coordinator: AuctionCoordinator = Depends(get_coordinator)) -> dict[str, Any]:
    current = await coordinator.current()
    return {
        "lot": current["lot"].to_dict(),
        "item": current["item"].to_dict() if current["item"] else None,
        "bidders": [bidder.to_dict() for bidder in current["bidders"]],
    }


@app.get("/auction/state", tags=["auction"])
async def full_state(coordinator: AuctionCoordinator = Depends(get_coordinator)) -> dict[str, Any]:
    state = await coordinator.full_state()
    return {
        "lot": state["lot"].to_dict(),
        "items": [item.to_dict() for item in state["items"]],
        "bidders": [bidder.to_dict() for bidder in state["bidders"]],
    }


@app.get("/auction/events", tags=["auction"])
async def events(
    request: Request,
    settings: ServerConfig = Depends(get_server_settings),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> StreamingResponse:
    stream = event_stream(
        request,
        coordinator,
        broadcaster.queues,
        keepalive=settings.notifier.stream_keepalive_seconds,
    )
    return StreamingResponse(
        stream,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@app.post("/auction/start", tags=["auction"])
async def start_lot(
    payload: dict[str, Any] = Body(...),
    schemas: SchemaRegistry = Depends(get_schema_service),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    validate_payload(schemas, "start", payload)
    try:
        lot = await coordinator.start(payload["item_id"])
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return format_lot(lot)


@app.post("/auction/bid", tags=["auction"])
async def place_bid(
    payload: dict[str, Any] = Body(...),
    schemas: SchemaRegistry = Depends(get_schema_service),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    validate_payload(schemas, "bid", payload)
    try:
        lot = await coordinator.place_bid(payload["bidder_id"], whole_amount(payload, "amount"))
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return format_lot(lot)


@app.post("/auction/match", tags=["auction"])
async def match_bid(
    payload: dict[str, Any] = Body(...),
    schemas: SchemaRegistry = Depends(get_schema_service),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    validate_payload(schemas, "match", payload)
    try:
        lot = await coordinator.match(payload["bidder_id"])
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return format_lot(lot)


@app.post("/auction/lottery", tags=["auction"])
async def run_lottery(
    _: str = Depends(admin_auth.require_admin),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    try:
        lot, winner = await coordinator.run_lottery()
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return {"lot": lot.to_dict(), "winner": winner.to_dict()}


@app.post("/auction/close", tags=["auction"])
async def close_lot(
    payload: dict[str, Any] | None = Body(None),
    schemas: SchemaRegistry = Depends(get_schema_service),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    payload = payload or {}
    validate_payload(schemas, "close", payload)
    try:
        closure = await coordinator.close(bool(payload.get("force_unsold", False)))
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return format_closure(closure)


@app.post("/auction/unsold", tags=["auction"])
async def mark_unsold(coordinator: AuctionCoordinator = Depends(get_coordinator)) -> dict[str, Any]:
    try:
        closure = await coordinator.close(force_unsold=True)
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return format_closure(closure)


@app.post("/auction/force-resolve", tags=["auction"])
async def force_resolve(
    payload: dict[str, Any] = Body(...),
    _: str = Depends(admin_auth.require_admin),
    schemas: SchemaRegistry = Depends(get_schema_service),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    validate_payload(schemas, "force_resolve", payload)
    try:
        closure = await coordinator.force_resolve(
            payload["item_id"], payload["bidder_id"], whole_amount(payload, "amount")
        )
    except AuctionRejection as exc:
        raise rejection_to_http(exc) from exc
    return format_closure(closure)


@app.post("/auction/reset", tags=["auction"])
async def reset_lot(
    _: str = Depends(admin_auth.require_admin),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    lot = await coordinator.reset()
    return format_lot(lot)


@app.post("/auction/reset-all", tags=["auction"])
async def reset_all(
    _: str = Depends(admin_auth.require_admin),
    coordinator: AuctionCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    items, bidders = await coordinator.reset_all()
    return {
        "lot": coordinator.lot.to_dict(),
        "items": [item.to_dict() for item in items],
        "bidders": [bidder.to_dict() for bidder in bidders],
    }

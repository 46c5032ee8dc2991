"""Expose currently loaded server config for debugging."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..auction.coordinator import AuctionCoordinator
from ..config import ServerConfig

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_config(request: Request) -> ServerConfig:
    return request.app.state.server_config


def _get_coordinator(request: Request) -> AuctionCoordinator:
    return request.app.state.coordinator


@router.get("/config")
async def config(
    request: Request,
    config: ServerConfig = Depends(_get_config),
    coordinator: AuctionCoordinator = Depends(_get_coordinator),
) -> dict:
    policy = coordinator.policy
    return {
        "version": request.app.version,
        "storage_backend": config.storage.backend,
        "notifier_publishers": list(config.notifier.publishers),
        "rules": {
            "policy": policy.name,
            "base_prices": {category.value: price for category, price in policy.base_prices.items()},
            "tier_cap": policy.tier_cap,
            "squad_size": policy.squad_size,
            "requirements": [
                {
                    "categories": sorted(category.value for category in requirement.categories),
                    "minimum": requirement.minimum,
                }
                for requirement in policy.requirements
            ],
            "floor_category": policy.floor_category.value,
            "floor_amount": policy.floor_amount,
            "floor_squad_threshold": policy.floor_squad_threshold,
        },
    }

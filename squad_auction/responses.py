"""HTTP-edge helpers shared by the auction and admin routes."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException
from jsonschema import ValidationError

from .auction.coordinator import LotClosure
from .auction.errors import AlreadyExists, AuctionRejection, InvalidState, NotFound
from .auction.models import Lot
from .validation.validator import SchemaRegistry

logger = logging.getLogger(__name__)


def rejection_to_http(exc: AuctionRejection) -> HTTPException:
    if isinstance(exc, NotFound):
        status_code = 404
    elif isinstance(exc, (InvalidState, AlreadyExists)):
        status_code = 409
    else:
        status_code = 422
    logger.warning("command rejected: %s (%s)", exc.message, exc.code)
    return HTTPException(status_code=status_code, detail=exc.to_dict())


def validate_payload(schemas: SchemaRegistry, name: str, payload: dict[str, Any]) -> None:
    try:
        schemas.validate(name, payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc.message)) from exc


def whole_amount(payload: dict[str, Any], key: str) -> int | None:
    """Integral JSON numbers such as ``9000.0`` pass the schema; store them as ints."""
    value = payload.get(key)
    return None if value is None else int(value)


def format_closure(closure: LotClosure) -> dict[str, Any]:
    return {
        "lot": closure.lot.to_dict(),
        "closed": closure.closed.to_dict(),
        "sold": closure.sold,
        "item": closure.item.to_dict(),
        "bidder": closure.bidder.to_dict() if closure.bidder else None,
    }


def format_lot(lot: Lot) -> dict[str, Any]:
    return {"lot": lot.to_dict()}

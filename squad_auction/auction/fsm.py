"""Lot lifecycle finite state machine."""

from __future__ import annotations

from enum import Enum

from .errors import InvalidState


class LotState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class LotEvent(str, Enum):
    START = "start"
    BID = "bid"
    MATCH = "match"
    LOTTERY = "lottery"
    CLOSE = "close"
    FORCE_RESOLVE = "force_resolve"
    RESET = "reset"


_TRANSITIONS = {
    (LotState.IDLE, LotEvent.START): LotState.ACTIVE,
    (LotState.ACTIVE, LotEvent.BID): LotState.ACTIVE,
    (LotState.ACTIVE, LotEvent.MATCH): LotState.ACTIVE,
    (LotState.ACTIVE, LotEvent.LOTTERY): LotState.ACTIVE,
    (LotState.ACTIVE, LotEvent.CLOSE): LotState.IDLE,
    (LotState.ACTIVE, LotEvent.FORCE_RESOLVE): LotState.IDLE,
    (LotState.IDLE, LotEvent.RESET): LotState.IDLE,
    (LotState.ACTIVE, LotEvent.RESET): LotState.IDLE,
}

_MESSAGES = {
    LotState.IDLE: "no active lot",
    LotState.ACTIVE: "a lot is already in progress",
}


def transition(current: LotState, event: LotEvent) -> LotState:
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError as exc:
        raise InvalidState(f"{_MESSAGES[current]}: cannot {event.value}") from exc

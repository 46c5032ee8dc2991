"""Single-writer owner of the current lot.

Every mutating operation runs read -> validate -> mutate (-> commit) inside one
``asyncio.Lock``, so concurrent callers are applied one at a time in the order
they reach the lock. Notifications are scheduled only after the lock is
released and can never undo a committed transition.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, replace
from typing import Any, Awaitable

from ..rules.engine import admissible
from ..rules.policy import RulePolicy
from .errors import (
    AlreadyExists,
    AuctionRejection,
    DuplicateBidder,
    IncrementTooSmall,
    InsufficientBidders,
    InvalidState,
    NotFound,
    RuleReason,
    RuleViolation,
)
from .fsm import LotEvent, LotState, transition
from .models import IDLE_LOT, Bidder, Category, Item, ItemStatus, Lot, squad_of
from .resolution import resolve_no_sale, settle_sale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LotClosure:
    closed: Lot
    item: Item
    bidder: Bidder | None
    lot: Lot = IDLE_LOT

    @property
    def sold(self) -> bool:
        return self.bidder is not None


class AuctionCoordinator:
    def __init__(
        self,
        store,
        notifier,
        policy: RulePolicy,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._policy = policy
        self._rng = rng or random.Random()
        self._lot = IDLE_LOT
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    @property
    def policy(self) -> RulePolicy:
        return self._policy

    @property
    def state(self) -> LotState:
        return LotState.ACTIVE if self._lot.active else LotState.IDLE

    @property
    def lot(self) -> Lot:
        return self._lot

    # Lot lifecycle ----------------------------------------------------------

    async def start(self, item_id: str) -> Lot:
        async with self._lock:
            transition(self.state, LotEvent.START)
            item = await self._item(item_id)
            if not item.is_available:
                raise InvalidState(f"item {item_id} is {item.status.value}")
            lot = Lot(item_id=item.id, price=item.base_price, bidder_ids=(), active=True)
            self._lot = lot
        logger.info("lot started item=%s price=%d", item.id, lot.price)
        self._notify(self._notifier.on_lot_started(lot, item))
        return lot

    async def place_bid(self, bidder_id: str, amount: int | None = None) -> Lot:
        if amount is not None:
            _require_whole_amount(amount)
        async with self._lock:
            transition(self.state, LotEvent.BID)
            current = self._lot
            item = await self._item(current.item_id)
            bidder = await self._bidder(bidder_id)
            increment = self._policy.increment(item.category, current.price)
            if amount is None:
                price = current.price + increment if current.bidder_ids else current.price
            else:
                minimum = current.price + increment if current.bidder_ids else item.base_price
                if amount < minimum:
                    raise IncrementTooSmall(
                        f"bid must be at least {minimum} (increment {increment})"
                    )
                price = amount
            await self._admit(bidder, item, price)
            lot = current.with_bidders((bidder.id,), price)
            self._lot = lot
        logger.info("bid placed item=%s bidder=%s price=%d", item.id, bidder.id, price)
        self._notify(self._notifier.on_bid_placed(lot))
        return lot

    async def match(self, bidder_id: str) -> Lot:
        async with self._lock:
            transition(self.state, LotEvent.MATCH)
            current = self._lot
            if not current.bidder_ids:
                raise InsufficientBidders("no bid to match")
            if bidder_id in current.bidder_ids:
                raise DuplicateBidder(f"bidder {bidder_id} already matches this bid")
            item = await self._item(current.item_id)
            bidder = await self._bidder(bidder_id)
            await self._admit(bidder, item, current.price)
            lot = current.with_bidders((bidder.id, *current.bidder_ids))
            self._lot = lot
        logger.info("bid matched item=%s bidder=%s price=%d", item.id, bidder.id, lot.price)
        self._notify(self._notifier.on_match(lot))
        return lot

    async def run_lottery(self) -> tuple[Lot, Bidder]:
        async with self._lock:
            transition(self.state, LotEvent.LOTTERY)
            current = self._lot
            if len(current.bidder_ids) < 2:
                raise InsufficientBidders("lottery requires at least 2 matching bidders")
            winner = await self._bidder(self._rng.choice(current.bidder_ids))
            lot = current.with_bidders((winner.id,))
            self._lot = lot
        logger.info(
            "lottery resolved item=%s winner=%s among=%d",
            lot.item_id,
            winner.id,
            len(current.bidder_ids),
        )
        self._notify(self._notifier.on_lottery_resolved(lot, winner))
        return lot, winner

    async def close(self, force_unsold: bool = False) -> LotClosure:
        async with self._lock:
            transition(self.state, LotEvent.CLOSE)
            current = self._lot
            item = await self._item(current.item_id)
            bidder: Bidder | None = None
            if current.bidder_ids and not force_unsold:
                leader = await self._bidder(current.leader_id)
                sale = settle_sale(item, leader, current.price)
                item, bidder = await self._store.commit_sale(
                    sale.item_id, sale.bidder_id, sale.price
                )
            else:
                outcome = resolve_no_sale(item, self._policy)
                item = await self._store.commit_no_sale(
                    outcome.item_id,
                    outcome.status,
                    outcome.category,
                    outcome.base_price,
                    outcome.round,
                )
            self._lot = IDLE_LOT
        closure = LotClosure(closed=current, item=item, bidder=bidder)
        if bidder:
            logger.info("lot sold item=%s bidder=%s price=%d", item.id, bidder.id, current.price)
        else:
            logger.info(
                "lot unsold item=%s status=%s category=%s round=%d",
                item.id,
                item.status.value,
                item.category.value,
                item.round,
            )
        self._notify(self._notifier.on_lot_closed(current, item, bidder))
        return closure

    async def force_resolve(self, item_id: str, bidder_id: str, amount: int) -> LotClosure:
        _require_whole_amount(amount)
        async with self._lock:
            transition(self.state, LotEvent.FORCE_RESOLVE)
            current = self._lot
            if current.item_id != item_id:
                raise InvalidState(f"item {item_id} is not the active lot")
            if amount <= 0:
                raise AuctionRejection("amount must be a positive number")
            item = await self._item(item_id)
            bidder = await self._bidder(bidder_id)
            sale = settle_sale(item, bidder, amount)
            item, bidder = await self._store.commit_sale(sale.item_id, sale.bidder_id, sale.price)
            self._lot = IDLE_LOT
        closed = current.with_bidders((bidder.id,), amount)
        logger.warning("lot force-resolved item=%s bidder=%s price=%d", item.id, bidder.id, amount)
        self._notify(self._notifier.on_lot_closed(closed, item, bidder))
        return LotClosure(closed=closed, item=item, bidder=bidder)

    async def reset(self) -> Lot:
        async with self._lock:
            transition(self.state, LotEvent.RESET)
            discarded = self._lot
            self._lot = IDLE_LOT
        if discarded.active:
            logger.warning("lot reset, discarded item=%s", discarded.item_id)
        self._notify(self._notifier.on_lot_reset(IDLE_LOT))
        return IDLE_LOT

    async def reset_all(self) -> tuple[list[Item], list[Bidder]]:
        async with self._lock:
            items, bidders = await self._store.reset_all()
            self._lot = IDLE_LOT
        logger.warning("full auction reset items=%d bidders=%d", len(items), len(bidders))
        self._notify(self._notifier.on_full_reset(items, bidders))
        return items, bidders

    # Pool management --------------------------------------------------------

    async def add_item(
        self,
        item_id: str,
        name: str,
        category: Category | str,
        *,
        base_price: int | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> Item:
        category = Category(category)
        if base_price is not None:
            _require_whole_amount(base_price)
        async with self._lock:
            if await self._has_item(item_id):
                raise AlreadyExists(f"item {item_id} already exists")
            item = Item(
                id=item_id,
                name=name,
                category=category,
                base_price=base_price if base_price is not None else self._policy.base_price(category),
                attributes=dict(attributes or {}),
            )
            item = await self._store.add_item(item)
        logger.info("item added item=%s category=%s", item.id, item.category.value)
        self._notify(self._notifier.on_pool_changed("item", "added", item.to_dict()))
        return item

    async def update_item(
        self,
        item_id: str,
        *,
        name: str | None = None,
        category: Category | str | None = None,
        base_price: int | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> Item:
        if base_price is not None:
            _require_whole_amount(base_price)
        async with self._lock:
            item = await self._item(item_id)
            if self._lot.active and self._lot.item_id == item.id:
                raise InvalidState(f"item {item_id} is the active lot")
            updates: dict[str, Any] = {}
            if name is not None:
                updates["name"] = name
            if attributes is not None:
                updates["attributes"] = dict(attributes)
            if category is not None or base_price is not None:
                if not item.is_available:
                    raise InvalidState(f"item {item_id} is {item.status.value}: tier and price are fixed")
                tier = Category(category) if category is not None else item.category
                if base_price is None:
                    base_price = self._policy.base_price(tier)
                # edits become the new baseline a full reset restores to
                updates.update(
                    category=tier,
                    original_category=tier,
                    base_price=base_price,
                    original_base_price=base_price,
                    round=1,
                )
            item = await self._store.update_item(replace(item, **updates))
        logger.info("item updated item=%s fields=%s", item.id, ",".join(sorted(updates)))
        self._notify(self._notifier.on_pool_changed("item", "updated", item.to_dict()))
        return item

    async def delete_item(self, item_id: str) -> None:
        async with self._lock:
            item = await self._item(item_id)
            if self._lot.active and self._lot.item_id == item.id:
                raise InvalidState(f"item {item_id} is the active lot")
            if item.status is ItemStatus.SOLD:
                raise InvalidState(f"item {item_id} is sold to {item.winner_id}")
            await self._store.delete_item(item.id)
        logger.warning("item deleted item=%s", item_id)
        self._notify(self._notifier.on_pool_changed("item", "deleted", {"id": item_id}))

    async def add_bidder(
        self,
        bidder_id: str,
        name: str,
        *,
        budget: int | None = None,
        owner: str | None = None,
    ) -> Bidder:
        if budget is not None:
            _require_whole_amount(budget)
        async with self._lock:
            if await self._has_bidder(bidder_id):
                raise AlreadyExists(f"bidder {bidder_id} already exists")
            bidder = Bidder(
                id=bidder_id,
                name=name,
                initial_budget=budget if budget is not None else self._policy.default_budget,
                owner=owner,
            )
            bidder = await self._store.add_bidder(bidder)
        logger.info("bidder added bidder=%s budget=%d", bidder.id, bidder.initial_budget)
        self._notify(self._notifier.on_pool_changed("bidder", "added", bidder.to_dict()))
        return bidder

    async def update_bidder(
        self,
        bidder_id: str,
        *,
        name: str | None = None,
        owner: str | None = None,
        budget: int | None = None,
    ) -> Bidder:
        if budget is not None:
            _require_whole_amount(budget)
        async with self._lock:
            bidder = await self._bidder(bidder_id)
            updates: dict[str, Any] = {}
            if name is not None:
                updates["name"] = name
            if owner is not None:
                updates["owner"] = owner
            if budget is not None:
                if bidder.id in self._lot.bidder_ids:
                    raise InvalidState(f"bidder {bidder_id} is bidding on the active lot")
                if budget < bidder.spent:
                    raise AuctionRejection(
                        f"budget {budget} is below the {bidder.spent} already spent"
                    )
                updates.update(initial_budget=budget, remaining_budget=budget - bidder.spent)
            bidder = await self._store.update_bidder(replace(bidder, **updates))
        logger.info("bidder updated bidder=%s fields=%s", bidder.id, ",".join(sorted(updates)))
        self._notify(self._notifier.on_pool_changed("bidder", "updated", bidder.to_dict()))
        return bidder

    async def delete_bidder(self, bidder_id: str) -> None:
        async with self._lock:
            bidder = await self._bidder(bidder_id)
            if bidder.id in self._lot.bidder_ids:
                raise InvalidState(f"bidder {bidder_id} is bidding on the active lot")
            members = squad_of(bidder.id, await self._store.list_items())
            if members:
                raise InvalidState(
                    f"bidder {bidder_id} owns {len(members)} items; run a full reset first"
                )
            await self._store.delete_bidder(bidder.id)
        logger.warning("bidder deleted bidder=%s", bidder_id)
        self._notify(self._notifier.on_pool_changed("bidder", "deleted", {"id": bidder_id}))

    # Queries ----------------------------------------------------------------

    async def full_state(self) -> dict[str, Any]:
        async with self._lock:
            lot = self._lot
            items = await self._store.list_items()
            bidders = await self._store.list_bidders()
        return {"lot": lot, "items": items, "bidders": bidders}

    async def current(self) -> dict[str, Any]:
        async with self._lock:
            lot = self._lot
            if not lot.active:
                return {"lot": lot, "item": None, "bidders": []}
            item = await self._item(lot.item_id)
            bidders = [await self._bidder(bidder_id) for bidder_id in lot.bidder_ids]
        return {"lot": lot, "item": item, "bidders": bidders}

    async def squad(self, bidder_id: str) -> dict[str, Any]:
        async with self._lock:
            bidder = await self._bidder(bidder_id)
            items = await self._store.list_items()
        members = squad_of(bidder.id, items)
        counts: dict[str, int] = {}
        for member in members:
            counts[member.category.value] = counts.get(member.category.value, 0) + 1
        return {"bidder": bidder, "squad": members, "spent": bidder.spent, "counts": counts}

    async def drain(self) -> None:
        """Wait for scheduled notifications to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # Internals --------------------------------------------------------------

    async def _admit(self, bidder: Bidder, item: Item, price: int) -> None:
        items = await self._store.list_items()
        verdict = admissible(bidder, item, price, items, self._policy)
        if not verdict.ok:
            raise RuleViolation(verdict.reason or RuleReason.SOLVENCY, verdict.message)

    async def _item(self, item_id: str | None) -> Item:
        try:
            return await self._store.get_item(item_id)
        except KeyError as exc:
            raise NotFound(f"item {item_id} not found") from exc

    async def _bidder(self, bidder_id: str | None) -> Bidder:
        try:
            return await self._store.get_bidder(bidder_id)
        except KeyError as exc:
            raise NotFound(f"bidder {bidder_id} not found") from exc

    async def _has_item(self, item_id: str) -> bool:
        try:
            await self._store.get_item(item_id)
        except KeyError:
            return False
        return True

    async def _has_bidder(self, bidder_id: str) -> bool:
        try:
            await self._store.get_bidder(bidder_id)
        except KeyError:
            return False
        return True

    def _notify(self, delivery: Awaitable[None]) -> None:
        task = asyncio.create_task(self._deliver(delivery))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, delivery: Awaitable[None]) -> None:
        try:
            await delivery
        except Exception:
            logger.exception("notifier delivery failed")


def _require_whole_amount(amount: Any) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise AuctionRejection(f"amount {amount!r} must be a whole number")

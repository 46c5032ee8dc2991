"""Shared auction data structures."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any


class Category(str, Enum):
    """Item tier, declared from most to least valuable."""

    A = "A"
    B = "B"
    C = "C"

    def downgrade(self) -> Category | None:
        if self is Category.A:
            return Category.B
        if self is Category.B:
            return Category.C
        if self is Category.C:
            return None
        raise ValueError(f"unknown category {self}")


class ItemStatus(str, Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    WITHDRAWN = "withdrawn"


@dataclass
class Item:
    id: str
    name: str
    category: Category
    base_price: int
    original_category: Category | None = None
    original_base_price: int | None = None
    round: int = 1
    status: ItemStatus = ItemStatus.AVAILABLE
    sold_price: int | None = None
    winner_id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.category = Category(self.category)
        self.status = ItemStatus(self.status)
        if self.original_category is None:
            self.original_category = self.category
        else:
            self.original_category = Category(self.original_category)
        if self.original_base_price is None:
            self.original_base_price = self.base_price

    @property
    def is_available(self) -> bool:
        return self.status is ItemStatus.AVAILABLE

    def restored(self) -> Item:
        return replace(
            self,
            category=self.original_category,
            base_price=self.original_base_price,
            round=1,
            status=ItemStatus.AVAILABLE,
            sold_price=None,
            winner_id=None,
        )

    def sold_to(self, bidder_id: str, price: int) -> Item:
        return replace(
            self, status=ItemStatus.SOLD, sold_price=price, winner_id=bidder_id
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        data["original_category"] = self.original_category.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            category=Category(data["category"]),
            base_price=int(data["base_price"]),
            original_category=data.get("original_category"),
            original_base_price=data.get("original_base_price"),
            round=int(data.get("round", 1)),
            status=ItemStatus(data.get("status", ItemStatus.AVAILABLE.value)),
            sold_price=int(data["sold_price"]) if data.get("sold_price") is not None else None,
            winner_id=data.get("winner_id"),
            attributes=dict(data.get("attributes") or {}),
        )


@dataclass
class Bidder:
    id: str
    name: str
    initial_budget: int
    remaining_budget: int | None = None
    owner: str | None = None

    def __post_init__(self) -> None:
        if self.remaining_budget is None:
            self.remaining_budget = self.initial_budget

    @property
    def spent(self) -> int:
        return self.initial_budget - self.remaining_budget

    def restored(self) -> Bidder:
        return replace(self, remaining_budget=self.initial_budget)

    def debited(self, amount: int) -> Bidder:
        if amount < 0 or amount > self.remaining_budget:
            raise ValueError(
                f"cannot debit {amount} from remaining budget {self.remaining_budget}"
            )
        return replace(self, remaining_budget=self.remaining_budget - amount)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Bidder:
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            initial_budget=int(data["initial_budget"]),
            remaining_budget=(
                int(data["remaining_budget"])
                if data.get("remaining_budget") is not None
                else None
            ),
            owner=data.get("owner"),
        )


@dataclass(frozen=True)
class Lot:
    """Snapshot of what is currently up for bid.

    ``bidder_ids`` is ordered with the most recent leader first.
    """

    item_id: str | None = None
    price: int = 0
    bidder_ids: tuple[str, ...] = ()
    active: bool = False

    @property
    def leader_id(self) -> str | None:
        return self.bidder_ids[0] if self.bidder_ids else None

    def with_bidders(self, bidder_ids: tuple[str, ...], price: int | None = None) -> Lot:
        return replace(
            self,
            bidder_ids=bidder_ids,
            price=self.price if price is None else price,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "price": self.price,
            "bidder_ids": list(self.bidder_ids),
            "active": self.active,
        }


IDLE_LOT = Lot()


def squad_of(bidder_id: str, items: list[Item]) -> list[Item]:
    return [
        item
        for item in items
        if item.status is ItemStatus.SOLD and item.winner_id == bidder_id
    ]

"""Cart pricing against the live catalog."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

from django.db import DEFAULT_DB_ALIAS

from apps.lounges.models import Food, Lounge

from .exceptions import (
    EmptyCartError,
    FoodNotFoundError,
    ItemUnavailableError,
    LoungeNotFoundError,
    OrderValidationError,
)


@dataclass(frozen=True)
class CartEntry:
    food_id: UUID
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    """One cart entry with the catalog name and price read at pricing time."""

    food_id: UUID
    name: str
    price: Decimal
    quantity: int
    subtotal: Decimal
    estimated_time: Optional[int] = None


@dataclass(frozen=True)
class PricedCart:
    lounge: Lounge
    lines: tuple
    total_price: Decimal


class OrderAggregateBuilder:
    """
    Prices a cart for one lounge.

    Prices always come from the catalog at the moment of pricing; the
    client never supplies them. Lines keep the order of the cart and the
    total is the sum of line subtotals. Read-only.
    """

    def __init__(self, *, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def build(self, *, lounge_id: UUID, entries: Sequence[CartEntry]) -> PricedCart:
        """
        Price ``entries`` against the catalog of ``lounge_id``.

        Raises:
            EmptyCartError: If there are no entries
            LoungeNotFoundError: If the lounge doesn't exist
            OrderValidationError: If the lounge is not accepting orders or a
                quantity is below one
            FoodNotFoundError: If an item doesn't exist or belongs to
                another lounge
            ItemUnavailableError: If an item is marked unavailable
        """
        if not entries:
            raise EmptyCartError()

        try:
            lounge = Lounge.objects.using(self.using).get(id=lounge_id)
        except Lounge.DoesNotExist:
            raise LoungeNotFoundError(f"Lounge {lounge_id} not found")

        if not lounge.is_active:
            raise OrderValidationError(f"{lounge.name} is not accepting orders")

        food_ids = [as_uuid(entry.food_id) for entry in entries]
        foods = Food.objects.using(self.using).in_bulk(
            {food_id for food_id in food_ids if food_id is not None}
        )

        lines = []
        total_price = Decimal('0.00')
        for entry, food_id in zip(entries, food_ids):
            food = foods.get(food_id)
            if food is None or food.lounge_id != lounge.id:
                raise FoodNotFoundError(f"Food item {entry.food_id} not found")

            if not food.is_available:
                raise ItemUnavailableError(f"{food.name} is not available")

            if entry.quantity < 1:
                raise OrderValidationError("Quantity must be at least 1")

            subtotal = food.price * entry.quantity
            total_price += subtotal

            lines.append(PricedLine(
                food_id=food.id,
                name=food.name,
                price=food.price,
                quantity=entry.quantity,
                subtotal=subtotal,
                estimated_time=food.estimated_time,
            ))

        return PricedCart(lounge=lounge, lines=tuple(lines), total_price=total_price)


def as_uuid(value) -> Optional[UUID]:
    """Parse ``value`` as a UUID; None if it is not one."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None

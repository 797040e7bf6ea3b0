"""Read access to orders, scoped by the caller's role."""

from typing import Optional
from uuid import UUID

from django.db import DEFAULT_DB_ALIAS
from django.db.models import QuerySet
from returns.result import Failure, Result, Success

from apps.accounts.models import User

from ..models import Order
from .exceptions import OrderNotFoundError, OrderServiceError
from .order_access import ensure_can_view, orders_visible_to
from .order_builder import as_uuid
from .order_status import parse_status


class OrderQueryService:

    def __init__(self, *, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def list_orders(
        self,
        *,
        user: User,
        status: Optional[str] = None
    ) -> Result[QuerySet, OrderServiceError]:
        """Orders visible to ``user``, newest first, optionally by status."""
        queryset = (
            orders_visible_to(user, using=self.using)
            .select_related('user', 'lounge')
            .order_by('-created_at')
        )
        if status:
            try:
                queryset = queryset.filter(status=parse_status(status))
            except OrderServiceError as exc:
                return Failure(exc)
        return Success(queryset)

    def get_order(self, *, order_id: UUID, user: User) -> Result[Order, OrderServiceError]:
        """
        Fetch one order with its lines, buyer and lounge.

        Returns ``Failure(OrderNotFoundError)`` if it doesn't exist and
        ``Failure(OrderAuthorizationError)`` if ``user`` is neither the
        buyer, the lounge owner nor an admin.
        """
        order_id = as_uuid(order_id)
        if order_id is None:
            return Failure(OrderNotFoundError())

        order = (
            Order.objects
            .using(self.using)
            .select_related('user', 'lounge', 'payment')
            .prefetch_related('items')
            .filter(id=order_id)
            .first()
        )
        if order is None:
            return Failure(OrderNotFoundError())

        try:
            ensure_can_view(order, user)
        except OrderServiceError as exc:
            return Failure(exc)
        return Success(order)

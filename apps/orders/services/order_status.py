"""
Order lifecycle.

    PENDING -> PREPARING -> READY -> DELIVERED
        \\          \\          \\
         +-----------+----------+--> CANCELLED

DELIVERED and CANCELLED are terminal. Status updates move one step
forward at a time or cancel; backward moves and any move out of a
terminal state are rejected. Scanning the QR code at pickup delivers
an order from any non-terminal state (see ``REDEEMABLE_STATUSES``).
"""

from uuid import UUID

import structlog
from django.db import DEFAULT_DB_ALIAS, transaction
from django.utils import timezone
from returns.result import Failure, Result, Success

from apps.accounts.models import User

from ..models import Order, OrderStatus
from .exceptions import (
    InvalidStatusTransitionError,
    OrderNotFoundError,
    OrderServiceError,
    OrderValidationError,
)
from .notifications import notify_order_status
from .order_access import ensure_can_manage
from .order_builder import as_uuid

logger = structlog.get_logger(__name__)


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PREPARING,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.PREPARING: frozenset({
        OrderStatus.READY,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.READY: frozenset({
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# States from which a QR scan may hand the order over
REDEEMABLE_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
})


def parse_status(value) -> OrderStatus:
    """
    Raises:
        OrderValidationError: If ``value`` is not a known status
    """
    try:
        return OrderStatus(str(value).upper())
    except ValueError:
        raise OrderValidationError("Invalid status")


def validate_transition(current: str, target: str) -> None:
    """
    Raises:
        InvalidStatusTransitionError: If ``target`` is not reachable from
            ``current``
    """
    current = OrderStatus(current)
    target = OrderStatus(target)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(
            f"Cannot change order status from {current.value} to {target.value}"
        )


class OrderStatusService:
    """Applies lounge-side status changes through the transition table."""

    def __init__(self, *, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def change_status(
        self,
        *,
        order_id: UUID,
        status: str,
        changed_by: User
    ) -> Result[Order, OrderServiceError]:
        """
        Move an order to ``status``.

        The order row is locked while the transition is checked and
        applied. Entering DELIVERED stamps ``delivered_at``.

        Returns:
            ``Success(order)`` or ``Failure`` carrying one of:
            OrderValidationError (unknown status), OrderNotFoundError,
            OrderAuthorizationError (not the lounge owner or an admin),
            InvalidStatusTransitionError
        """
        try:
            order = self._change_status(order_id=order_id, status=status, changed_by=changed_by)
        except OrderServiceError as exc:
            logger.info(
                "Order status change rejected",
                order_id=str(order_id),
                requested_status=str(status),
                error=exc.message,
            )
            return Failure(exc)
        return Success(order)

    def _change_status(self, *, order_id, status, changed_by):
        target = parse_status(status)
        order_uuid = as_uuid(order_id)
        if order_uuid is None:
            raise OrderNotFoundError()

        with transaction.atomic(using=self.using):
            try:
                order = (
                    Order.objects
                    .using(self.using)
                    .select_for_update()
                    .select_related('lounge', 'user')
                    .get(id=order_uuid)
                )
            except Order.DoesNotExist:
                raise OrderNotFoundError()

            ensure_can_manage(order, changed_by, action='update')

            previous = order.status
            validate_transition(previous, target)

            order.status = target
            update_fields = ['status', 'updated_at']
            if target == OrderStatus.DELIVERED:
                order.delivered_at = timezone.now()
                update_fields.append('delivered_at')
            order.save(using=self.using, update_fields=update_fields)

            notify_order_status(order, using=self.using)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=previous,
            to_status=target.value,
            changed_by=str(changed_by.id),
        )
        return order

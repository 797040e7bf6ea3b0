"""QR redemption: hand an order over exactly once."""

import structlog
from django.db import DEFAULT_DB_ALIAS, transaction
from django.utils import timezone
from returns.result import Failure, Result, Success

from apps.accounts.models import User

from ..models import Order, OrderStatus
from .exceptions import (
    OrderAlreadyDeliveredError,
    OrderCancelledError,
    OrderConflictError,
    OrderNotFoundError,
    OrderServiceError,
)
from .notifications import notify_order_status
from .order_access import ensure_can_manage
from .order_status import REDEEMABLE_STATUSES
from .qr_codes import OrderQRCodeIssuer

logger = structlog.get_logger(__name__)


class QRRedemptionService:
    """
    Marks an order delivered when its QR code is scanned at the lounge.

    Redemption is not idempotent: a second scan of the same code is a
    conflict, never a silent success.
    """

    def __init__(self, *, using: str = DEFAULT_DB_ALIAS, issuer: OrderQRCodeIssuer = None):
        self.using = using
        self.issuer = issuer or OrderQRCodeIssuer()

    def redeem(self, *, qr_code: str, scanned_by: User) -> Result[Order, OrderServiceError]:
        """
        Verify ``qr_code`` and mark its order delivered.

        Returns:
            ``Success(order)`` with the delivered order, or ``Failure``
            carrying one of: InvalidQRCodeError (bad format or signature,
            checked before any lookup), OrderNotFoundError,
            OrderAuthorizationError, OrderAlreadyDeliveredError,
            OrderCancelledError
        """
        try:
            order = self._redeem(qr_code=qr_code, scanned_by=scanned_by)
        except OrderServiceError as exc:
            logger.info(
                "QR redemption rejected",
                scanned_by=str(scanned_by.id),
                error=exc.message,
            )
            return Failure(exc)
        return Success(order)

    def _redeem(self, *, qr_code, scanned_by):
        order_id = self.issuer.verify_payload(qr_code)

        with transaction.atomic(using=self.using):
            order = (
                Order.objects
                .using(self.using)
                .select_related('lounge', 'user')
                .filter(id=order_id, qr_code=qr_code)
                .first()
            )
            if order is None:
                raise OrderNotFoundError()

            ensure_can_manage(order, scanned_by, action='verify')

            if order.status == OrderStatus.DELIVERED:
                raise OrderAlreadyDeliveredError()
            if order.status == OrderStatus.CANCELLED:
                raise OrderCancelledError()

            # Guard and transition in one statement; a concurrent scan that
            # got here first leaves nothing to update.
            delivered_at = timezone.now()
            updated = (
                Order.objects
                .using(self.using)
                .filter(id=order.id, status__in=REDEEMABLE_STATUSES)
                .update(
                    status=OrderStatus.DELIVERED,
                    delivered_at=delivered_at,
                    updated_at=delivered_at,
                )
            )
            if not updated:
                raise self._conflict_for(order.id)

            order.status = OrderStatus.DELIVERED
            order.delivered_at = delivered_at
            order.updated_at = delivered_at

            notify_order_status(order, using=self.using)

        logger.info(
            "Order redeemed",
            order_id=str(order.id),
            lounge_id=str(order.lounge_id),
            scanned_by=str(scanned_by.id),
        )
        return order

    def _conflict_for(self, order_id) -> OrderConflictError:
        status = (
            Order.objects
            .using(self.using)
            .filter(id=order_id)
            .values_list('status', flat=True)
            .first()
        )
        if status == OrderStatus.CANCELLED:
            return OrderCancelledError()
        return OrderAlreadyDeliveredError()

"""
Order placement pipeline.

Turns a cart into a priced, settled, redeemable order::

    result = OrderPlacementService().place_order(
        user=request.user,
        lounge_id=lounge.id,
        entries=[CartEntry(food_id=burger.id, quantity=2)],
        payment_method='contract',
        contract_id=contract.id,
    )
    if is_successful(result):
        order = result.unwrap()
"""

from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

import structlog
from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, transaction
from returns.result import Failure, Result, Success

from apps.accounts.models import User

from ..models import Order, OrderItem, OrderStatus
from .commission_ledger import CommissionLedger, compute_commission
from .exceptions import OrderServiceError
from .notifications import notify_order_status
from .order_builder import CartEntry, OrderAggregateBuilder
from .payment_resolution import PaymentResolver
from .qr_codes import OrderQRCodeIssuer

logger = structlog.get_logger(__name__)


class OrderPlacementService:
    """
    Creates orders as one unit of work.

    Pricing, settlement, the order and its lines, the QR code, the payment
    back-link and the commission row are all written inside a single
    transaction. If any step fails nothing is kept, including the contract
    debit.

    The commission rate is read once when the service is built and frozen
    onto every order it places.
    """

    def __init__(
        self,
        *,
        using: str = DEFAULT_DB_ALIAS,
        commission_rate: Optional[Decimal] = None,
        qr_issuer: Optional[OrderQRCodeIssuer] = None,
    ):
        self.using = using
        self.commission_rate = Decimal(
            str(commission_rate if commission_rate is not None else settings.SYSTEM_COMMISSION_RATE)
        )
        self.builder = OrderAggregateBuilder(using=using)
        self.resolver = PaymentResolver(using=using)
        self.ledger = CommissionLedger(using=using)
        self.qr_issuer = qr_issuer or OrderQRCodeIssuer()

    def place_order(
        self,
        *,
        user: User,
        lounge_id: UUID,
        entries: Sequence[CartEntry],
        payment_method: str,
        contract_id: Optional[UUID] = None,
    ) -> Result[Order, OrderServiceError]:
        """
        Price, settle and persist an order.

        Args:
            user: Buyer placing the order
            lounge_id: Lounge the cart is ordered from
            entries: Cart entries in the order the buyer listed them
            payment_method: 'contract' or 'gateway'
            contract_id: Prepaid contract to debit (contract payments only)

        Returns:
            ``Success(order)`` with the created order, or ``Failure``
            carrying the OrderServiceError that stopped it (empty cart,
            unknown or unavailable item, invalid method, no usable
            contract, insufficient balance)
        """
        try:
            order = self._place_order(
                user=user,
                lounge_id=lounge_id,
                entries=entries,
                payment_method=payment_method,
                contract_id=contract_id,
            )
        except OrderServiceError as exc:
            logger.info(
                "Order placement rejected",
                user_id=str(user.id),
                lounge_id=str(lounge_id),
                payment_method=payment_method,
                error=exc.message,
            )
            return Failure(exc)
        return Success(order)

    def _place_order(self, *, user, lounge_id, entries, payment_method, contract_id):
        strategy = self.resolver.strategy_for(payment_method)

        with transaction.atomic(using=self.using):
            cart = self.builder.build(lounge_id=lounge_id, entries=entries)
            commission = compute_commission(cart.total_price, self.commission_rate)

            payment = strategy.settle(
                user=user,
                lounge=cart.lounge,
                total_price=cart.total_price,
                commission=commission,
                contract_id=contract_id,
            )

            order = Order(
                user=user,
                lounge=cart.lounge,
                total_price=cart.total_price,
                commission=commission,
                payment_method=strategy.order_payment_method,
                payment=payment,
                contract=payment.contract,
                status=OrderStatus.PENDING,
            )
            order.qr_code = self.qr_issuer.mint_payload(order.id)
            order.qr_code_image = self.qr_issuer.render_image(order.qr_code)
            order.save(using=self.using, force_insert=True)

            OrderItem.objects.using(self.using).bulk_create([
                OrderItem(
                    order=order,
                    food_id=line.food_id,
                    position=position,
                    name=line.name,
                    price=line.price,
                    quantity=line.quantity,
                    subtotal=line.subtotal,
                    estimated_time=line.estimated_time,
                )
                for position, line in enumerate(cart.lines)
            ])

            payment.order = order
            payment.save(using=self.using, update_fields=['order', 'updated_at'])

            self.ledger.record(order=order, rate=self.commission_rate)

            notify_order_status(order, using=self.using)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            user_id=str(user.id),
            lounge_id=str(order.lounge_id),
            total_price=str(order.total_price),
            commission=str(order.commission),
            payment_method=order.payment_method,
            payment_status=payment.status,
        )
        return order

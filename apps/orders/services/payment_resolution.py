"""
Payment settlement strategies.

Contract orders are paid immediately by debiting the buyer's prepaid
wallet at the lounge. Gateway orders get a PENDING payment that an
external confirmation channel completes later.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.models import F
from django.utils import timezone

from apps.accounts.models import User
from apps.lounges.models import Contract, Lounge

from ..models import OrderPaymentMethod, Payment, PaymentMethod, PaymentStatus, PaymentType
from .exceptions import (
    ContractNotFoundError,
    InsufficientBalanceError,
    InvalidPaymentMethodError,
)

logger = structlog.get_logger(__name__)


class SettlementStrategy:
    """Base class for the ways an order total can be settled."""

    order_payment_method = None

    def __init__(self, *, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def settle(
        self,
        *,
        user: User,
        lounge: Lounge,
        total_price: Decimal,
        commission: Decimal,
        contract_id: Optional[UUID] = None,
    ) -> Payment:
        raise NotImplementedError


class ContractWalletSettlement(SettlementStrategy):
    """
    Debit the buyer's prepaid contract and record a completed payment.

    The debit and the payment row are written in one transaction. The
    contract row is locked for the duration, and the debit itself is a
    conditional UPDATE that only matches while the balance still covers
    the total, so two racing settlements can never both succeed.
    """

    order_payment_method = OrderPaymentMethod.CONTRACT

    def settle(self, *, user, lounge, total_price, commission, contract_id=None):
        if contract_id is None:
            raise ContractNotFoundError()

        with transaction.atomic(using=self.using):
            contract = (
                Contract.objects
                .using(self.using)
                .select_for_update()
                .filter(
                    id=contract_id,
                    user=user,
                    lounge=lounge,
                    is_active=True,
                    is_expired=False,
                )
                .first()
            )
            if contract is None:
                raise ContractNotFoundError()

            if contract.remaining_balance < total_price:
                raise InsufficientBalanceError()

            debited = (
                Contract.objects
                .using(self.using)
                .filter(id=contract.id, remaining_balance__gte=total_price)
                .update(
                    remaining_balance=F('remaining_balance') - total_price,
                    updated_at=timezone.now(),
                )
            )
            if not debited:
                raise InsufficientBalanceError()

            payment = Payment.objects.using(self.using).create(
                user=user,
                amount=total_price,
                commission=commission,
                type=PaymentType.ORDER,
                method=PaymentMethod.CONTRACT_WALLET,
                status=PaymentStatus.COMPLETED,
                contract=contract,
            )

        logger.info(
            "Contract debited",
            contract_id=str(contract.id),
            payment_id=str(payment.id),
            amount=str(total_price),
        )
        return payment


class GatewaySettlement(SettlementStrategy):
    """Record a pending payment for the external gateway to complete."""

    order_payment_method = OrderPaymentMethod.GATEWAY

    def settle(self, *, user, lounge, total_price, commission, contract_id=None):
        return Payment.objects.using(self.using).create(
            user=user,
            amount=total_price,
            commission=commission,
            type=PaymentType.ORDER,
            method=PaymentMethod.GATEWAY,
            status=PaymentStatus.PENDING,
        )


class PaymentResolver:
    """Selects the settlement strategy for a requested payment method."""

    strategies = {
        'contract': ContractWalletSettlement,
        'gateway': GatewaySettlement,
    }

    def __init__(self, *, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def strategy_for(self, payment_method: str) -> SettlementStrategy:
        """
        Raises:
            InvalidPaymentMethodError: If ``payment_method`` is not one of
                'contract' or 'gateway'
        """
        key = payment_method.lower() if isinstance(payment_method, str) else None
        try:
            strategy_class = self.strategies[key]
        except KeyError:
            raise InvalidPaymentMethodError()
        return strategy_class(using=self.using)

"""
Service layer tests for the orders app.

Covers:
- Cart pricing (snapshot, totals, rejections)
- Payment resolution (contract debit, gateway pending)
- Commission ledger
- Order placement as a single unit of work
- Status transitions
- QR redemption (exactly once)
- Concurrency protection on the contract balance
"""

import pytest
import threading
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4
from django.db import connection
from django.test import TransactionTestCase
from returns.pipeline import is_successful

from apps.accounts.models import User, Role
from apps.lounges.models import Lounge, Food, Contract
from apps.orders.models import (
    Commission,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
)
from apps.orders.services import (
    ALLOWED_TRANSITIONS,
    CartEntry,
    CommissionLedger,
    ErrorKind,
    OrderAggregateBuilder,
    OrderPlacementService,
    OrderQRCodeIssuer,
    OrderQueryService,
    OrderStatusService,
    PaymentResolver,
    QRRedemptionService,
    compute_commission,
    validate_transition,
)
from apps.orders.services.exceptions import (
    ContractNotFoundError,
    EmptyCartError,
    FoodNotFoundError,
    InsufficientBalanceError,
    InvalidPaymentMethodError,
    InvalidQRCodeError,
    InvalidStatusTransitionError,
    ItemUnavailableError,
    LoungeNotFoundError,
    OrderAlreadyDeliveredError,
    OrderAuthorizationError,
    OrderCancelledError,
    OrderNotFoundError,
    OrderValidationError,
)
from apps.orders.services.payment_resolution import (
    ContractWalletSettlement,
    GatewaySettlement,
)
from apps.orders.services.order_status import REDEEMABLE_STATUSES, TERMINAL_STATUSES


def advance(order, user, *statuses):
    """Walk ``order`` through ``statuses`` one transition at a time."""
    service = OrderStatusService()
    for status in statuses:
        service.change_status(order_id=order.id, status=status, changed_by=user).unwrap()


def place(user, lounge, entries, method='contract', contract=None, rate=Decimal('0.05')):
    return OrderPlacementService(commission_rate=rate).place_order(
        user=user,
        lounge_id=lounge.id,
        entries=entries,
        payment_method=method,
        contract_id=contract.id if contract else None,
    )


# ============================================================================
# CART PRICING
# ============================================================================

@pytest.mark.django_db
class TestOrderAggregateBuilder:
    """Pricing carts against the catalog."""

    def test_prices_lines_from_catalog(self, lounge, food_a, food_b, cart):
        """Lines keep cart order and carry catalog name and price."""
        priced = OrderAggregateBuilder().build(lounge_id=lounge.id, entries=cart)

        assert priced.lounge == lounge
        assert priced.total_price == Decimal('130.00')
        assert [line.name for line in priced.lines] == ['Shiro Wat', 'Mango Smoothie']
        assert priced.lines[0].price == Decimal('50.00')
        assert priced.lines[0].subtotal == Decimal('100.00')
        assert priced.lines[1].subtotal == Decimal('30.00')

    def test_total_equals_sum_of_subtotals(self, lounge, food_a, food_b):
        entries = [
            CartEntry(food_id=food_b.id, quantity=3),
            CartEntry(food_id=food_a.id, quantity=1),
            CartEntry(food_id=food_b.id, quantity=1),
        ]
        priced = OrderAggregateBuilder().build(lounge_id=lounge.id, entries=entries)

        assert priced.total_price == sum(line.subtotal for line in priced.lines)
        assert priced.total_price == Decimal('170.00')
        assert len(priced.lines) == 3

    def test_empty_cart_rejected(self, lounge):
        with pytest.raises(EmptyCartError) as exc:
            OrderAggregateBuilder().build(lounge_id=lounge.id, entries=[])

        assert "at least one item" in str(exc.value)

    def test_unknown_food_rejected(self, lounge, food_a):
        entries = [CartEntry(food_id=uuid4(), quantity=1)]

        with pytest.raises(FoodNotFoundError) as exc:
            OrderAggregateBuilder().build(lounge_id=lounge.id, entries=entries)

        assert exc.value.kind == ErrorKind.NOT_FOUND

    def test_food_from_another_lounge_rejected(self, lounge, foreign_food):
        entries = [CartEntry(food_id=foreign_food.id, quantity=1)]

        with pytest.raises(FoodNotFoundError):
            OrderAggregateBuilder().build(lounge_id=lounge.id, entries=entries)

    def test_unavailable_food_rejected(self, lounge, food_a, unavailable_food):
        entries = [
            CartEntry(food_id=food_a.id, quantity=1),
            CartEntry(food_id=unavailable_food.id, quantity=1),
        ]

        with pytest.raises(ItemUnavailableError) as exc:
            OrderAggregateBuilder().build(lounge_id=lounge.id, entries=entries)

        assert exc.value.message == "Tibs is not available"
        assert exc.value.kind == ErrorKind.VALIDATION

    def test_unknown_lounge_rejected(self, food_a):
        entries = [CartEntry(food_id=food_a.id, quantity=1)]

        with pytest.raises(LoungeNotFoundError):
            OrderAggregateBuilder().build(lounge_id=uuid4(), entries=entries)

    def test_inactive_lounge_rejected(self, lounge, food_a):
        lounge.is_active = False
        lounge.save()
        entries = [CartEntry(food_id=food_a.id, quantity=1)]

        with pytest.raises(OrderValidationError) as exc:
            OrderAggregateBuilder().build(lounge_id=lounge.id, entries=entries)

        assert "not accepting orders" in str(exc.value)

    def test_zero_quantity_rejected(self, lounge, food_a):
        entries = [CartEntry(food_id=food_a.id, quantity=0)]

        with pytest.raises(OrderValidationError):
            OrderAggregateBuilder().build(lounge_id=lounge.id, entries=entries)


# ============================================================================
# PAYMENT RESOLUTION
# ============================================================================

@pytest.mark.django_db
class TestPaymentResolver:
    """Choosing and running settlement strategies."""

    @pytest.mark.parametrize('method, strategy_class', [
        ('contract', ContractWalletSettlement),
        ('CONTRACT', ContractWalletSettlement),
        ('gateway', GatewaySettlement),
        ('Gateway', GatewaySettlement),
    ])
    def test_strategy_for_known_methods(self, method, strategy_class):
        assert isinstance(PaymentResolver().strategy_for(method), strategy_class)

    @pytest.mark.parametrize('method', ['cash', '', None])
    def test_strategy_for_unknown_method(self, method):
        with pytest.raises(InvalidPaymentMethodError) as exc:
            PaymentResolver().strategy_for(method)

        assert exc.value.message == 'Invalid payment method'

    def test_contract_settlement_debits_balance(self, student, lounge, contract):
        payment = ContractWalletSettlement().settle(
            user=student,
            lounge=lounge,
            total_price=Decimal('130.00'),
            commission=Decimal('6.50'),
            contract_id=contract.id,
        )

        contract.refresh_from_db()
        assert contract.remaining_balance == Decimal('70.00')
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.method == PaymentMethod.CONTRACT_WALLET
        assert payment.amount == Decimal('130.00')
        assert payment.commission == Decimal('6.50')
        assert payment.contract == contract

    def test_contract_settlement_exact_balance(self, student, lounge, low_contract):
        """Spending the whole balance leaves exactly zero."""
        ContractWalletSettlement().settle(
            user=student,
            lounge=lounge,
            total_price=Decimal('100.00'),
            commission=Decimal('5.00'),
            contract_id=low_contract.id,
        )

        low_contract.refresh_from_db()
        assert low_contract.remaining_balance == Decimal('0.00')

    def test_contract_settlement_insufficient_balance(self, student, lounge, low_contract):
        with pytest.raises(InsufficientBalanceError):
            ContractWalletSettlement().settle(
                user=student,
                lounge=lounge,
                total_price=Decimal('130.00'),
                commission=Decimal('6.50'),
                contract_id=low_contract.id,
            )

        low_contract.refresh_from_db()
        assert low_contract.remaining_balance == Decimal('100.00')
        assert Payment.objects.count() == 0

    def test_contract_settlement_requires_contract_id(self, student, lounge):
        with pytest.raises(ContractNotFoundError):
            ContractWalletSettlement().settle(
                user=student,
                lounge=lounge,
                total_price=Decimal('10.00'),
                commission=Decimal('0.50'),
            )

    def test_contract_of_another_user_rejected(self, other_student, lounge, contract):
        with pytest.raises(ContractNotFoundError):
            ContractWalletSettlement().settle(
                user=other_student,
                lounge=lounge,
                total_price=Decimal('10.00'),
                commission=Decimal('0.50'),
                contract_id=contract.id,
            )

    def test_contract_for_another_lounge_rejected(self, student, other_lounge, contract):
        with pytest.raises(ContractNotFoundError):
            ContractWalletSettlement().settle(
                user=student,
                lounge=other_lounge,
                total_price=Decimal('10.00'),
                commission=Decimal('0.50'),
                contract_id=contract.id,
            )

    @pytest.mark.parametrize('field', ['is_active', 'is_expired'])
    def test_unusable_contract_rejected(self, student, lounge, contract, field):
        setattr(contract, field, field == 'is_expired')
        contract.save()

        with pytest.raises(ContractNotFoundError):
            ContractWalletSettlement().settle(
                user=student,
                lounge=lounge,
                total_price=Decimal('10.00'),
                commission=Decimal('0.50'),
                contract_id=contract.id,
            )

        contract.refresh_from_db()
        assert contract.remaining_balance == Decimal('200.00')

    def test_gateway_settlement_is_pending(self, student, lounge):
        payment = GatewaySettlement().settle(
            user=student,
            lounge=lounge,
            total_price=Decimal('130.00'),
            commission=Decimal('6.50'),
        )

        assert payment.status == PaymentStatus.PENDING
        assert payment.method == PaymentMethod.GATEWAY
        assert payment.contract is None


# ============================================================================
# COMMISSION LEDGER
# ============================================================================

class TestComputeCommission:

    @pytest.mark.parametrize('total, rate, expected', [
        ('130.00', '0.05', '6.50'),
        ('100.00', '0.05', '5.00'),
        ('0.10', '0.05', '0.01'),
        ('33.30', '0.05', '1.67'),
        ('19.99', '0.10', '2.00'),
        ('250.00', '0', '0.00'),
    ])
    def test_rounds_to_cents(self, total, rate, expected):
        assert compute_commission(Decimal(total), Decimal(rate)) == Decimal(expected)


@pytest.mark.django_db
class TestCommissionLedger:

    def test_record_copies_order_figures(self, placed_order):
        Commission.objects.filter(order=placed_order).delete()

        entry = CommissionLedger().record(order=placed_order, rate=Decimal('0.05'))

        assert entry.order == placed_order
        assert entry.lounge == placed_order.lounge
        assert entry.amount == placed_order.commission
        assert entry.order_amount == placed_order.total_price
        assert entry.rate == Decimal('0.05')


# ============================================================================
# ORDER PLACEMENT
# ============================================================================

@pytest.mark.django_db
class TestOrderPlacement:
    """Placing orders end to end through the service."""

    def test_contract_order_success(self, student, lounge, contract, cart):
        """A x2 + B x1 against a 200.00 contract at 5%."""
        result = place(student, lounge, cart, contract=contract)

        assert is_successful(result)
        order = result.unwrap()

        assert order.total_price == Decimal('130.00')
        assert order.commission == Decimal('6.50')
        assert order.status == OrderStatus.PENDING
        assert order.payment_method == 'CONTRACT'
        assert order.contract == contract
        assert order.qr_code.startswith(f'ORDER:{order.id}:')
        assert order.qr_code_image.startswith('data:image/png;base64,')

        contract.refresh_from_db()
        assert contract.remaining_balance == Decimal('70.00')

        payments = Payment.objects.filter(user=student)
        assert payments.count() == 1
        payment = payments.get()
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.order == order
        assert order.payment == payment

        commission = Commission.objects.get(order=order)
        assert commission.amount == Decimal('6.50')
        assert commission.order_amount == Decimal('130.00')
        assert commission.lounge == lounge

    def test_items_snapshot_in_cart_order(self, student, lounge, contract, cart):
        order = place(student, lounge, cart, contract=contract).unwrap()

        items = list(OrderItem.objects.filter(order=order))
        assert [item.name for item in items] == ['Shiro Wat', 'Mango Smoothie']
        assert [item.quantity for item in items] == [2, 1]
        assert [item.subtotal for item in items] == [Decimal('100.00'), Decimal('30.00')]
        assert [item.position for item in items] == [0, 1]

    def test_later_price_change_does_not_touch_order(self, student, lounge, contract, cart, food_a):
        order = place(student, lounge, cart, contract=contract).unwrap()

        food_a.price = Decimal('75.00')
        food_a.name = 'Shiro Wat Special'
        food_a.save()

        order.refresh_from_db()
        item = order.items.get(position=0)
        assert item.price == Decimal('50.00')
        assert item.name == 'Shiro Wat'
        assert order.total_price == Decimal('130.00')

    def test_commission_rate_frozen_per_order(self, student, lounge, contract, food_b):
        entries = [CartEntry(food_id=food_b.id, quantity=1)]
        first = place(student, lounge, entries, contract=contract, rate=Decimal('0.05')).unwrap()
        second = place(student, lounge, entries, contract=contract, rate=Decimal('0.10')).unwrap()

        first.refresh_from_db()
        assert first.commission == Decimal('1.50')
        assert second.commission == Decimal('3.00')
        assert Commission.objects.get(order=first).rate == Decimal('0.05')

    def test_default_rate_from_settings(self, settings, student, lounge, contract, cart):
        settings.SYSTEM_COMMISSION_RATE = Decimal('0.10')

        order = OrderPlacementService().place_order(
            user=student,
            lounge_id=lounge.id,
            entries=cart,
            payment_method='contract',
            contract_id=contract.id,
        ).unwrap()

        assert order.commission == Decimal('13.00')

    def test_insufficient_balance_persists_nothing(self, student, lounge, low_contract, cart):
        """130.00 against a 100.00 balance."""
        result = place(student, lounge, cart, contract=low_contract)

        assert not is_successful(result)
        error = result.failure()
        assert isinstance(error, InsufficientBalanceError)
        assert error.message == 'Insufficient contract balance'

        low_contract.refresh_from_db()
        assert low_contract.remaining_balance == Decimal('100.00')
        assert Order.objects.count() == 0
        assert Payment.objects.count() == 0
        assert Commission.objects.count() == 0

    def test_gateway_order_is_pending(self, student, lounge, contract, cart):
        order = place(student, lounge, cart, method='gateway').unwrap()

        assert order.payment_method == 'GATEWAY'
        assert order.payment.status == PaymentStatus.PENDING
        assert order.payment.method == PaymentMethod.GATEWAY
        assert order.contract is None
        assert order.status == OrderStatus.PENDING
        assert Commission.objects.filter(order=order).exists()

        contract.refresh_from_db()
        assert contract.remaining_balance == Decimal('200.00')

    def test_invalid_payment_method(self, student, lounge, cart):
        result = place(student, lounge, cart, method='cash')

        assert isinstance(result.failure(), InvalidPaymentMethodError)
        assert Order.objects.count() == 0

    def test_contract_method_without_contract(self, student, lounge, cart):
        result = place(student, lounge, cart)

        assert isinstance(result.failure(), ContractNotFoundError)
        assert result.failure().message == 'Valid contract not found for this lounge'

    def test_empty_cart(self, student, lounge, contract):
        result = place(student, lounge, [], contract=contract)

        assert isinstance(result.failure(), EmptyCartError)

    def test_unavailable_item_debits_nothing(self, student, lounge, contract, unavailable_food):
        entries = [CartEntry(food_id=unavailable_food.id, quantity=1)]
        result = place(student, lounge, entries, contract=contract)

        assert isinstance(result.failure(), ItemUnavailableError)
        contract.refresh_from_db()
        assert contract.remaining_balance == Decimal('200.00')

    def test_failure_after_debit_rolls_back(self, student, lounge, contract, cart):
        """A ledger failure undoes the debit, payment and order."""
        with patch.object(CommissionLedger, 'record', side_effect=RuntimeError('ledger down')):
            with pytest.raises(RuntimeError):
                place(student, lounge, cart, contract=contract)

        contract.refresh_from_db()
        assert contract.remaining_balance == Decimal('200.00')
        assert Payment.objects.count() == 0
        assert Order.objects.count() == 0
        assert OrderItem.objects.count() == 0

    def test_qr_render_failure_rolls_back(self, student, lounge, contract, cart):
        with patch.object(OrderQRCodeIssuer, 'render_image', side_effect=RuntimeError('no PIL')):
            with pytest.raises(RuntimeError):
                place(student, lounge, cart, contract=contract)

        contract.refresh_from_db()
        assert contract.remaining_balance == Decimal('200.00')
        assert Payment.objects.count() == 0

    def test_qr_codes_unique_per_order(self, student, lounge, contract, food_b):
        entries = [CartEntry(food_id=food_b.id, quantity=1)]
        first = place(student, lounge, entries, contract=contract).unwrap()
        second = place(student, lounge, entries, contract=contract).unwrap()

        assert first.qr_code != second.qr_code


# ============================================================================
# QR CODES
# ============================================================================

class TestOrderQRCodeIssuer:

    def test_payload_round_trip(self):
        issuer = OrderQRCodeIssuer()
        order_id = uuid4()

        assert issuer.verify_payload(issuer.mint_payload(order_id)) == order_id

    def test_payload_is_deterministic(self):
        issuer = OrderQRCodeIssuer()
        order_id = uuid4()

        assert issuer.mint_payload(order_id) == issuer.mint_payload(order_id)

    @pytest.mark.parametrize('payload', [None, '', 'short', 12345678901])
    def test_malformed_payload(self, payload):
        with pytest.raises(InvalidQRCodeError):
            OrderQRCodeIssuer().verify_payload(payload)

    def test_tampered_order_id(self):
        issuer = OrderQRCodeIssuer()
        payload = issuer.mint_payload(uuid4())
        _, _, signature = payload.rpartition(':')

        with pytest.raises(InvalidQRCodeError):
            issuer.verify_payload(f'ORDER:{uuid4()}:{signature}')

    def test_other_salt_rejected(self):
        payload = OrderQRCodeIssuer(salt='another-app').mint_payload(uuid4())

        with pytest.raises(InvalidQRCodeError):
            OrderQRCodeIssuer().verify_payload(payload)

    def test_signed_value_without_prefix_rejected(self):
        issuer = OrderQRCodeIssuer()
        payload = issuer.signer.sign(f'TICKET:{uuid4()}')

        with pytest.raises(InvalidQRCodeError):
            issuer.verify_payload(payload)

    def test_render_image_is_png_data_url(self):
        image = OrderQRCodeIssuer().render_image('ORDER:test-payload')

        assert image.startswith('data:image/png;base64,')
        assert len(image) > len('data:image/png;base64,')


# ============================================================================
# STATUS TRANSITIONS
# ============================================================================

class TestTransitionTable:

    @pytest.mark.parametrize('current, target', [
        ('PENDING', 'PREPARING'),
        ('PREPARING', 'READY'),
        ('PREPARING', 'CANCELLED'),
        ('READY', 'DELIVERED'),
        ('PENDING', 'CANCELLED'),
        ('READY', 'CANCELLED'),
    ])
    def test_allowed(self, current, target):
        validate_transition(current, target)

    @pytest.mark.parametrize('current, target', [
        ('DELIVERED', 'PREPARING'),
        ('DELIVERED', 'CANCELLED'),
        ('CANCELLED', 'PENDING'),
        ('READY', 'PREPARING'),
        ('PREPARING', 'PENDING'),
        ('PENDING', 'PENDING'),
        ('PENDING', 'READY'),
        ('PENDING', 'DELIVERED'),
        ('PREPARING', 'DELIVERED'),
    ])
    def test_rejected(self, current, target):
        with pytest.raises(InvalidStatusTransitionError):
            validate_transition(current, target)

    def test_terminal_states_have_no_exits(self):
        assert ALLOWED_TRANSITIONS[OrderStatus.DELIVERED] == frozenset()
        assert ALLOWED_TRANSITIONS[OrderStatus.CANCELLED] == frozenset()

    def test_forward_moves_are_single_steps(self):
        assert ALLOWED_TRANSITIONS[OrderStatus.PENDING] == {OrderStatus.PREPARING, OrderStatus.CANCELLED}
        assert ALLOWED_TRANSITIONS[OrderStatus.PREPARING] == {OrderStatus.READY, OrderStatus.CANCELLED}
        assert ALLOWED_TRANSITIONS[OrderStatus.READY] == {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

    def test_every_non_terminal_state_is_redeemable(self):
        assert REDEEMABLE_STATUSES == set(OrderStatus) - TERMINAL_STATUSES


@pytest.mark.django_db
class TestOrderStatusService:

    def test_owner_advances_order(self, placed_order, lounge_owner):
        result = OrderStatusService().change_status(
            order_id=placed_order.id,
            status='PREPARING',
            changed_by=lounge_owner,
        )

        assert result.unwrap().status == OrderStatus.PREPARING
        placed_order.refresh_from_db()
        assert placed_order.status == OrderStatus.PREPARING

    def test_lowercase_status_accepted(self, placed_order, lounge_owner):
        result = OrderStatusService().change_status(
            order_id=placed_order.id,
            status='preparing',
            changed_by=lounge_owner,
        )

        assert result.unwrap().status == OrderStatus.PREPARING

    def test_delivered_stamps_time(self, placed_order, lounge_owner):
        advance(placed_order, lounge_owner, 'PREPARING', 'READY')
        placed_order.refresh_from_db()
        assert placed_order.delivered_at is None

        order = OrderStatusService().change_status(
            order_id=placed_order.id,
            status='DELIVERED',
            changed_by=lounge_owner,
        ).unwrap()

        assert order.delivered_at is not None
        placed_order.refresh_from_db()
        assert placed_order.delivered_at is not None

    def test_skipping_ahead_rejected(self, placed_order, lounge_owner):
        result = OrderStatusService().change_status(
            order_id=placed_order.id,
            status='DELIVERED',
            changed_by=lounge_owner,
        )

        assert isinstance(result.failure(), InvalidStatusTransitionError)
        placed_order.refresh_from_db()
        assert placed_order.status == OrderStatus.PENDING
        assert placed_order.delivered_at is None

    def test_malformed_order_id(self, lounge_owner):
        result = OrderStatusService().change_status(
            order_id='0123456789-abcdef-0123-4567-89ab-cde',
            status='PREPARING',
            changed_by=lounge_owner,
        )

        assert isinstance(result.failure(), OrderNotFoundError)

    def test_delivered_cannot_go_back(self, placed_order, lounge_owner):
        service = OrderStatusService()
        advance(placed_order, lounge_owner, 'PREPARING', 'READY', 'DELIVERED')

        result = service.change_status(
            order_id=placed_order.id,
            status='PREPARING',
            changed_by=lounge_owner,
        )

        assert isinstance(result.failure(), InvalidStatusTransitionError)
        assert result.failure().kind == ErrorKind.VALIDATION
        placed_order.refresh_from_db()
        assert placed_order.status == OrderStatus.DELIVERED

    def test_unknown_status(self, placed_order, lounge_owner):
        result = OrderStatusService().change_status(
            order_id=placed_order.id,
            status='LOST',
            changed_by=lounge_owner,
        )

        assert isinstance(result.failure(), OrderValidationError)
        assert result.failure().message == 'Invalid status'

    def test_unknown_order(self, lounge_owner):
        result = OrderStatusService().change_status(
            order_id=uuid4(),
            status='READY',
            changed_by=lounge_owner,
        )

        assert isinstance(result.failure(), OrderNotFoundError)

    def test_other_lounge_owner_rejected(self, placed_order, other_owner):
        result = OrderStatusService().change_status(
            order_id=placed_order.id,
            status='READY',
            changed_by=other_owner,
        )

        assert isinstance(result.failure(), OrderAuthorizationError)
        placed_order.refresh_from_db()
        assert placed_order.status == OrderStatus.PENDING

    def test_admin_can_cancel(self, placed_order, admin_user):
        result = OrderStatusService().change_status(
            order_id=placed_order.id,
            status='CANCELLED',
            changed_by=admin_user,
        )

        assert result.unwrap().status == OrderStatus.CANCELLED


# ============================================================================
# QR REDEMPTION
# ============================================================================

@pytest.mark.django_db
class TestQRRedemption:

    def test_first_scan_delivers(self, placed_order, lounge_owner):
        result = QRRedemptionService().redeem(
            qr_code=placed_order.qr_code,
            scanned_by=lounge_owner,
        )

        order = result.unwrap()
        assert order.id == placed_order.id
        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_at is not None

        placed_order.refresh_from_db()
        assert placed_order.status == OrderStatus.DELIVERED

    def test_second_scan_conflicts(self, placed_order, lounge_owner):
        service = QRRedemptionService()
        first = service.redeem(qr_code=placed_order.qr_code, scanned_by=lounge_owner).unwrap()

        result = service.redeem(qr_code=placed_order.qr_code, scanned_by=lounge_owner)

        error = result.failure()
        assert isinstance(error, OrderAlreadyDeliveredError)
        assert error.kind == ErrorKind.CONFLICT
        assert error.message == 'Order already delivered'

        placed_order.refresh_from_db()
        assert placed_order.delivered_at == first.delivered_at

    def test_ready_order_redeemable(self, placed_order, lounge_owner):
        advance(placed_order, lounge_owner, 'PREPARING', 'READY')

        result = QRRedemptionService().redeem(
            qr_code=placed_order.qr_code,
            scanned_by=lounge_owner,
        )

        assert result.unwrap().status == OrderStatus.DELIVERED

    def test_cancelled_order_conflicts(self, placed_order, lounge_owner):
        placed_order.status = OrderStatus.CANCELLED
        placed_order.save()

        result = QRRedemptionService().redeem(
            qr_code=placed_order.qr_code,
            scanned_by=lounge_owner,
        )

        assert isinstance(result.failure(), OrderCancelledError)
        placed_order.refresh_from_db()
        assert placed_order.status == OrderStatus.CANCELLED

    def test_other_lounge_owner_rejected(self, placed_order, other_owner):
        result = QRRedemptionService().redeem(
            qr_code=placed_order.qr_code,
            scanned_by=other_owner,
        )

        assert isinstance(result.failure(), OrderAuthorizationError)
        assert result.failure().message == 'Not authorized to verify this order'
        placed_order.refresh_from_db()
        assert placed_order.status == OrderStatus.PENDING

    def test_admin_can_redeem(self, placed_order, admin_user):
        result = QRRedemptionService().redeem(
            qr_code=placed_order.qr_code,
            scanned_by=admin_user,
        )

        assert result.unwrap().status == OrderStatus.DELIVERED

    def test_malformed_code_never_queries(self, lounge_owner, django_assert_num_queries):
        with django_assert_num_queries(0):
            result = QRRedemptionService().redeem(qr_code='garbage', scanned_by=lounge_owner)

        assert isinstance(result.failure(), InvalidQRCodeError)

    def test_forged_signature_never_queries(self, placed_order, lounge_owner, django_assert_num_queries):
        forged = placed_order.qr_code[:-4] + 'AAAA'

        with django_assert_num_queries(0):
            result = QRRedemptionService().redeem(qr_code=forged, scanned_by=lounge_owner)

        assert isinstance(result.failure(), InvalidQRCodeError)

    def test_signed_code_for_unknown_order(self, lounge_owner):
        payload = OrderQRCodeIssuer().mint_payload(uuid4())

        result = QRRedemptionService().redeem(qr_code=payload, scanned_by=lounge_owner)

        assert isinstance(result.failure(), OrderNotFoundError)


# ============================================================================
# QUERIES
# ============================================================================

@pytest.mark.django_db
class TestOrderQueries:

    def test_student_sees_own_orders(self, placed_order, student, other_student):
        service = OrderQueryService()

        assert list(service.list_orders(user=student).unwrap()) == [placed_order]
        assert list(service.list_orders(user=other_student).unwrap()) == []

    def test_owner_sees_lounge_orders(self, placed_order, lounge_owner, other_owner):
        service = OrderQueryService()

        assert list(service.list_orders(user=lounge_owner).unwrap()) == [placed_order]
        assert list(service.list_orders(user=other_owner).unwrap()) == []

    def test_admin_sees_everything(self, placed_order, gateway_order, admin_user):
        orders = OrderQueryService().list_orders(user=admin_user).unwrap()

        assert set(orders) == {placed_order, gateway_order}

    def test_status_filter(self, placed_order, gateway_order, lounge_owner, student):
        OrderStatusService().change_status(
            order_id=gateway_order.id,
            status='PREPARING',
            changed_by=lounge_owner,
        )

        orders = OrderQueryService().list_orders(user=student, status='preparing').unwrap()

        assert list(orders) == [gateway_order]

    def test_invalid_status_filter(self, student):
        result = OrderQueryService().list_orders(user=student, status='LOST')

        assert isinstance(result.failure(), OrderValidationError)

    def test_get_order_for_stranger(self, placed_order, other_student):
        result = OrderQueryService().get_order(order_id=placed_order.id, user=other_student)

        assert isinstance(result.failure(), OrderAuthorizationError)

    def test_get_unknown_order(self, student):
        result = OrderQueryService().get_order(order_id=uuid4(), user=student)

        assert isinstance(result.failure(), OrderNotFoundError)

    @pytest.mark.parametrize('order_id', [
        '0123456789-abcdef-0123-4567-89ab-cde',
        'not-a-uuid',
        None,
    ])
    def test_get_malformed_order_id(self, student, order_id):
        result = OrderQueryService().get_order(order_id=order_id, user=student)

        assert isinstance(result.failure(), OrderNotFoundError)


# ============================================================================
# CONCURRENCY TESTS
# ============================================================================

class TestConcurrentSettlement(TransactionTestCase):
    """Racing settlements against one contract with real transactions."""

    def setUp(self):
        owner = User.objects.create_user(
            email='race.owner@example.com',
            password='TestPass123!',
            role=Role.LOUNGE,
        )
        self.student = User.objects.create_user(
            email='race.student@example.com',
            password='TestPass123!',
            role=Role.USER,
        )
        self.lounge = Lounge.objects.create(owner=owner, name='Race Lounge', is_approved=True)
        self.food = Food.objects.create(lounge=self.lounge, name='Combo', price=Decimal('60.00'))
        self.contract = Contract.objects.create(
            user=self.student,
            lounge=self.lounge,
            total_amount=Decimal('100.00'),
            remaining_balance=Decimal('100.00'),
        )

    def test_only_one_of_two_settlements_succeeds(self):
        """Two 60.00 orders against 100.00: one wins, one is refused."""
        results = []
        errors = []

        def place_in_thread():
            try:
                result = OrderPlacementService().place_order(
                    user=self.student,
                    lounge_id=self.lounge.id,
                    entries=[CartEntry(food_id=self.food.id, quantity=1)],
                    payment_method='contract',
                    contract_id=self.contract.id,
                )
                if is_successful(result):
                    results.append(result.unwrap())
                else:
                    errors.append(result.failure())
            finally:
                connection.close()

        threads = [
            threading.Thread(target=place_in_thread)
            for _ in range(2)
        ]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], InsufficientBalanceError)

        self.contract.refresh_from_db()
        assert self.contract.remaining_balance == Decimal('40.00')
        assert Payment.objects.filter(contract=self.contract).count() == 1
        assert Order.objects.count() == 1

    def test_only_one_of_two_redemptions_succeeds(self):
        order = OrderPlacementService().place_order(
            user=self.student,
            lounge_id=self.lounge.id,
            entries=[CartEntry(food_id=self.food.id, quantity=1)],
            payment_method='contract',
            contract_id=self.contract.id,
        ).unwrap()
        owner = self.lounge.owner
        results = []
        errors = []

        def redeem_in_thread():
            try:
                result = QRRedemptionService().redeem(qr_code=order.qr_code, scanned_by=owner)
                if is_successful(result):
                    results.append(result.unwrap())
                else:
                    errors.append(result.failure())
            finally:
                connection.close()

        threads = [
            threading.Thread(target=redeem_in_thread)
            for _ in range(2)
        ]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], OrderAlreadyDeliveredError)
        order.refresh_from_db()
        assert order.status == OrderStatus.DELIVERED

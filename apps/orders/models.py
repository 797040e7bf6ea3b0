from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class OrderStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PREPARING = 'PREPARING', 'Preparing'
    READY = 'READY', 'Ready for pickup'
    DELIVERED = 'DELIVERED', 'Delivered'
    CANCELLED = 'CANCELLED', 'Cancelled'


class OrderPaymentMethod(models.TextChoices):
    CONTRACT = 'CONTRACT', 'Prepaid contract'
    GATEWAY = 'GATEWAY', 'Payment gateway'


class PaymentMethod(models.TextChoices):
    CONTRACT_WALLET = 'contract-wallet', 'Contract wallet'
    GATEWAY = 'gateway', 'Payment gateway'


class PaymentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    COMPLETED = 'COMPLETED', 'Completed'


class PaymentType(models.TextChoices):
    ORDER = 'ORDER', 'Order'


class Payment(models.Model):
    """
    Settlement of an order's total.

    Created before the order it pays for; ``order`` is filled in once the
    order row exists, inside the same transaction.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.PROTECT,
        related_name='payments'
    )

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    commission = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00')
    )

    type = models.CharField(max_length=20, choices=PaymentType.choices, default=PaymentType.ORDER)
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)

    contract = models.ForeignKey(
        'lounges.Contract',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payments'
    )
    order = models.OneToOneField(
        'orders.Order',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='settling_payment'
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'payments'
        indexes = [
            models.Index(fields=['user', 'status'], name='payments_user_status_idx'),
            models.Index(fields=['method', 'status'], name='payments_method_status_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.method} {self.amount} ({self.status})"


class Order(models.Model):
    """
    A priced, paid cart placed by a student at one lounge.

    ``total_price`` and ``commission`` are frozen at creation. After that
    the order only changes through status transitions.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.PROTECT,
        related_name='orders'
    )
    lounge = models.ForeignKey(
        'lounges.Lounge',
        on_delete=models.PROTECT,
        related_name='orders'
    )

    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    commission = models.DecimalField(max_digits=10, decimal_places=2)

    payment_method = models.CharField(max_length=20, choices=OrderPaymentMethod.choices)
    payment = models.OneToOneField(
        Payment,
        on_delete=models.PROTECT,
        related_name='paid_order'
    )
    contract = models.ForeignKey(
        'lounges.Contract',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='orders'
    )

    # Signed redemption payload and its rendered QR image (data URL)
    qr_code = models.CharField(max_length=255, unique=True)
    qr_code_image = models.TextField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING
    )
    delivered_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        indexes = [
            models.Index(fields=['user', 'created_at'], name='orders_user_created_idx'),
            models.Index(fields=['lounge', 'status'], name='orders_lounge_status_idx'),
            models.Index(fields=['status', 'created_at'], name='orders_status_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Order {str(self.id)[:8]} - {self.total_price} ({self.status})"

    @property
    def short_id(self):
        return str(self.id)[:8].upper()


class OrderItem(models.Model):
    """Line item with the catalog name and price snapshotted at order time."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items'
    )
    food = models.ForeignKey(
        'lounges.Food',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items'
    )

    # Cart position, preserves the order the student listed items in
    position = models.PositiveSmallIntegerField()

    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    estimated_time = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        db_table = 'order_items'
        ordering = ['order', 'position']
        constraints = [
            models.UniqueConstraint(fields=['order', 'position'], name='order_item_unique_position'),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.name}"


class Commission(models.Model):
    """Platform revenue ledger row. Written once per order, never updated."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.OneToOneField(
        Order,
        on_delete=models.PROTECT,
        related_name='commission_entry'
    )
    lounge = models.ForeignKey(
        'lounges.Lounge',
        on_delete=models.PROTECT,
        related_name='commissions'
    )

    amount = models.DecimalField(max_digits=10, decimal_places=2)
    rate = models.DecimalField(max_digits=5, decimal_places=4)
    order_amount = models.DecimalField(max_digits=10, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'commissions'
        indexes = [
            models.Index(fields=['lounge', 'created_at'], name='commissions_lounge_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.amount} @ {self.rate} on {self.order_amount}"

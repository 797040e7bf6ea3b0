from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class Lounge(models.Model):
    """Campus food vendor owned by a single lounge-role user."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='lounges'
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    logo = models.CharField(max_length=500, blank=True)

    # Opening hours, "HH:MM"
    opening = models.CharField(max_length=5, blank=True)
    closing = models.CharField(max_length=5, blank=True)

    is_approved = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'lounges'
        ordering = ['name']

    def __str__(self):
        return self.name

    def is_owned_by(self, user):
        return self.owner_id == user.id


class Food(models.Model):
    """Catalog item sold by a lounge."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    lounge = models.ForeignKey(
        Lounge,
        on_delete=models.CASCADE,
        related_name='foods'
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    is_available = models.BooleanField(default=True)

    # Preparation time in minutes
    estimated_time = models.PositiveIntegerField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'foods'
        indexes = [
            models.Index(fields=['lounge', 'is_available'], name='foods_lounge_avail_idx'),
        ]
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.price})"


class Contract(models.Model):
    """
    Prepaid wallet a student holds at one lounge.

    The balance only goes down through order settlement and can never
    drop below zero.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='contracts'
    )
    lounge = models.ForeignKey(
        Lounge,
        on_delete=models.CASCADE,
        related_name='contracts'
    )

    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    remaining_balance = models.DecimalField(max_digits=10, decimal_places=2)

    is_active = models.BooleanField(default=True)
    is_expired = models.BooleanField(default=False)

    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'contracts'
        indexes = [
            models.Index(fields=['user', 'lounge'], name='contracts_user_lounge_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(remaining_balance__gte=Decimal('0.00')),
                name='contract_balance_non_negative',
            ),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user} @ {self.lounge}: {self.remaining_balance}"

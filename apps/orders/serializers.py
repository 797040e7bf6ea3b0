from collections.abc import Mapping

from django.conf import settings
from rest_framework import serializers

from apps.accounts.models import User
from apps.lounges.models import Lounge
from .models import Order, OrderItem, OrderStatus, Payment


# =============================================================================
# Input Serializers
# =============================================================================

class SnakeCaseAliasMixin:
    """Accept snake_case spellings of camelCase input keys."""

    aliases = {}

    def to_internal_value(self, data):
        if isinstance(data, Mapping):
            data = data.copy()
            for camel, snake in self.aliases.items():
                if camel not in data and snake in data:
                    data[camel] = data[snake]
        return super().to_internal_value(data)


class OrderItemInputSerializer(SnakeCaseAliasMixin, serializers.Serializer):
    """One cart entry: ``{"foodId": UUID, "quantity": int}``."""

    aliases = {'foodId': 'food_id'}

    foodId = serializers.UUIDField(
        source='food_id',
        error_messages={'invalid': 'Invalid food ID'},
    )
    quantity = serializers.IntegerField(
        min_value=1,
        max_value=settings.ORDER_MAX_ITEM_QUANTITY,
        error_messages={
            'min_value': 'Quantity must be between 1 and {max}'.format(max=settings.ORDER_MAX_ITEM_QUANTITY),
            'max_value': 'Quantity must be between 1 and {max}'.format(max=settings.ORDER_MAX_ITEM_QUANTITY),
        },
    )


class CreateOrderInputSerializer(SnakeCaseAliasMixin, serializers.Serializer):
    """
    Validate the body of POST /orders/.

    Fields:
        loungeId (UUID): Lounge the cart is ordered from
        items (list): Cart entries, at least one
        paymentMethod (str): 'contract' or 'gateway'
        contractId (UUID): Prepaid contract to debit, contract payments only

    The snake_case spellings (lounge_id, food_id, payment_method,
    contract_id) are accepted as well.
    """

    aliases = {
        'loungeId': 'lounge_id',
        'paymentMethod': 'payment_method',
        'contractId': 'contract_id',
    }

    loungeId = serializers.UUIDField(
        source='lounge_id',
        error_messages={'invalid': 'Invalid lounge ID'},
    )
    items = OrderItemInputSerializer(
        many=True,
        allow_empty=False,
        error_messages={'empty': 'Order must contain at least one item'},
    )
    paymentMethod = serializers.ChoiceField(
        source='payment_method',
        choices=['contract', 'gateway'],
        error_messages={'invalid_choice': 'Invalid payment method'},
    )
    contractId = serializers.UUIDField(
        source='contract_id',
        required=False,
        allow_null=True,
        error_messages={'invalid': 'Invalid contract ID'},
    )

    def validate(self, attrs):
        if attrs['payment_method'] == 'contract' and not attrs.get('contract_id'):
            raise serializers.ValidationError({
                'contractId': 'Contract ID is required for contract payments'
            })
        return attrs


class OrderFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for order listing.

    Query Parameters:
        status (str): Filter by order status (case-insensitive)
    """

    status = serializers.CharField(required=False)

    def validate_status(self, value):
        value = value.upper()
        if value not in OrderStatus.values:
            raise serializers.ValidationError('Invalid status')
        return value


class UpdateStatusInputSerializer(serializers.Serializer):
    status = serializers.CharField()


class VerifyQRInputSerializer(serializers.Serializer):
    qrCode = serializers.CharField(
        source='qr_code',
        min_length=10,
        error_messages={'min_length': 'Invalid QR code', 'blank': 'Invalid QR code'},
    )


# =============================================================================
# Output Serializers
# =============================================================================

class BuyerSummarySerializer(serializers.ModelSerializer):
    """Minimal buyer info for nested serialization."""

    class Meta:
        model = User
        fields = ['id', 'name', 'phone']
        read_only_fields = fields


class LoungeSummarySerializer(serializers.ModelSerializer):
    """Minimal lounge info for nested serialization."""

    class Meta:
        model = Lounge
        fields = ['id', 'name', 'logo', 'opening', 'closing']
        read_only_fields = fields


class OrderItemSerializer(serializers.ModelSerializer):

    class Meta:
        model = OrderItem
        fields = [
            'id',
            'food',
            'name',
            'price',
            'quantity',
            'subtotal',
            'estimated_time',
        ]
        read_only_fields = fields


class PaymentSummarySerializer(serializers.ModelSerializer):

    class Meta:
        model = Payment
        fields = ['id', 'amount', 'method', 'status', 'created_at']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Full order representation with lines, lounge and redemption code."""

    user = BuyerSummarySerializer(read_only=True)
    lounge = LoungeSummarySerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    payment = PaymentSummarySerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'user',
            'lounge',
            'items',
            'total_price',
            'commission',
            'payment_method',
            'payment',
            'contract',
            'qr_code',
            'qr_code_image',
            'status',
            'delivered_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    user = BuyerSummarySerializer(read_only=True)
    lounge = LoungeSummarySerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'user',
            'lounge',
            'total_price',
            'payment_method',
            'status',
            'delivered_at',
            'created_at',
        ]
        read_only_fields = fields

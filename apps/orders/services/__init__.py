"""
Orders app services layer.

Services contain business logic and orchestrate operations across models.
Public operations return ``returns`` Result containers; the error side is
always an ``OrderServiceError`` whose ``kind`` tells the caller how to
report it.
"""

from .exceptions import (
    ErrorKind,
    OrderServiceError,
    OrderValidationError,
    OrderNotFoundError,
    OrderAuthorizationError,
    OrderConflictError,
    EmptyCartError,
    FoodNotFoundError,
    LoungeNotFoundError,
    ItemUnavailableError,
    InvalidPaymentMethodError,
    ContractNotFoundError,
    InsufficientBalanceError,
    InvalidStatusTransitionError,
    InvalidQRCodeError,
    OrderAlreadyDeliveredError,
    OrderCancelledError,
)

from .order_builder import (
    CartEntry,
    PricedLine,
    PricedCart,
    OrderAggregateBuilder,
)

from .payment_resolution import (
    SettlementStrategy,
    ContractWalletSettlement,
    GatewaySettlement,
    PaymentResolver,
)

from .commission_ledger import (
    CommissionLedger,
    compute_commission,
)

from .qr_codes import OrderQRCodeIssuer

from .order_status import (
    ALLOWED_TRANSITIONS,
    OrderStatusService,
    validate_transition,
)

from .redemption import QRRedemptionService

from .order_placement import OrderPlacementService

from .order_queries import OrderQueryService


__all__ = [
    # Exceptions
    'ErrorKind',
    'OrderServiceError',
    'OrderValidationError',
    'OrderNotFoundError',
    'OrderAuthorizationError',
    'OrderConflictError',
    'EmptyCartError',
    'FoodNotFoundError',
    'LoungeNotFoundError',
    'ItemUnavailableError',
    'InvalidPaymentMethodError',
    'ContractNotFoundError',
    'InsufficientBalanceError',
    'InvalidStatusTransitionError',
    'InvalidQRCodeError',
    'OrderAlreadyDeliveredError',
    'OrderCancelledError',

    # Pricing
    'CartEntry',
    'PricedLine',
    'PricedCart',
    'OrderAggregateBuilder',

    # Settlement
    'SettlementStrategy',
    'ContractWalletSettlement',
    'GatewaySettlement',
    'PaymentResolver',

    # Commission
    'CommissionLedger',
    'compute_commission',

    # QR codes
    'OrderQRCodeIssuer',
    'QRRedemptionService',

    # Lifecycle
    'ALLOWED_TRANSITIONS',
    'OrderStatusService',
    'validate_transition',

    # Orders
    'OrderPlacementService',
    'OrderQueryService',
]

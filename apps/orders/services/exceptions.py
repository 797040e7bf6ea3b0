"""
Domain-specific exceptions for the orders services.

Every error carries an ``ErrorKind`` so the HTTP layer can map it to a
status code without knowing the concrete exception type. Services raise
these internally (which unwinds and rolls back any open transaction) and
return them wrapped in a ``Failure`` at their public boundary.
"""
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = 'validation'
    NOT_FOUND = 'not_found'
    AUTHORIZATION = 'authorization'
    CONFLICT = 'conflict'


class OrderServiceError(Exception):
    """Base exception for all order service errors."""

    kind = ErrorKind.VALIDATION
    default_message = 'Order request failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class OrderValidationError(OrderServiceError):
    """Raised when input or policy rejects the request."""
    kind = ErrorKind.VALIDATION
    default_message = 'Validation failed'


class OrderNotFoundError(OrderServiceError):
    """Raised when an order, food item or lounge does not exist."""
    kind = ErrorKind.NOT_FOUND
    default_message = 'Order not found'


class OrderAuthorizationError(OrderServiceError):
    """Raised when the caller has no rights over the order."""
    kind = ErrorKind.AUTHORIZATION
    default_message = 'Not authorized to access this order'


class OrderConflictError(OrderServiceError):
    """Raised when the order's current state forbids the action."""
    kind = ErrorKind.CONFLICT
    default_message = 'Order state conflict'


class EmptyCartError(OrderValidationError):
    """Raised when an order is placed with no items."""
    default_message = 'Order must contain at least one item'


class FoodNotFoundError(OrderNotFoundError):
    """Raised when a cart entry references an unknown food item."""
    default_message = 'Food item not found'


class LoungeNotFoundError(OrderNotFoundError):
    """Raised when the order's lounge does not exist."""
    default_message = 'Lounge not found'


class ItemUnavailableError(OrderValidationError):
    """Raised when a cart entry references an unavailable food item."""
    default_message = 'Item is not available'


class InvalidPaymentMethodError(OrderValidationError):
    """Raised when the requested settlement method is unknown."""
    default_message = 'Invalid payment method'


class ContractNotFoundError(OrderValidationError):
    """Raised when no usable contract matches the buyer and lounge."""
    default_message = 'Valid contract not found for this lounge'


class InsufficientBalanceError(OrderValidationError):
    """Raised when a contract cannot cover the order total."""
    default_message = 'Insufficient contract balance'


class InvalidStatusTransitionError(OrderValidationError):
    """Raised when a status change is not allowed from the current state."""
    default_message = 'Invalid status transition'


class InvalidQRCodeError(OrderValidationError):
    """Raised when a scanned payload is malformed or its signature is wrong."""
    default_message = 'Invalid QR code'


class OrderAlreadyDeliveredError(OrderConflictError):
    """Raised when redeeming an order that was already handed over."""
    default_message = 'Order already delivered'


class OrderCancelledError(OrderConflictError):
    """Raised when redeeming an order that was cancelled."""
    default_message = 'Order has been cancelled'

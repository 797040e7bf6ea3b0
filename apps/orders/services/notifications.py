"""
Buyer push notifications for order status changes.

Delivery is fire-and-forget: messages are handed to the configured
sender after the surrounding transaction commits, and a failing sender
is logged without affecting the order.
"""

from functools import partial

import structlog
from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, transaction
from django.utils.module_loading import import_string

from ..models import Order, OrderStatus

logger = structlog.get_logger(__name__)


STATUS_MESSAGES = {
    OrderStatus.PENDING: (
        'Order placed',
        'Your order #{short_id} has been received by {lounge}.',
    ),
    OrderStatus.PREPARING: (
        'Order is being prepared',
        '{lounge} is preparing your order #{short_id}.',
    ),
    OrderStatus.READY: (
        'Order ready for pickup',
        'Your order #{short_id} is ready. Show your QR code at {lounge}.',
    ),
    OrderStatus.DELIVERED: (
        'Order delivered',
        'Your order #{short_id} has been picked up. Enjoy your meal!',
    ),
    OrderStatus.CANCELLED: (
        'Order cancelled',
        'Your order #{short_id} at {lounge} was cancelled.',
    ),
}


def build_status_message(order: Order, status: str = None) -> dict:
    status = OrderStatus(status or order.status)
    title, body = STATUS_MESSAGES[status]
    return {
        'title': title,
        'body': body.format(short_id=order.short_id, lounge=order.lounge.name),
    }


def log_backend(token: str, message: dict, data: dict) -> None:
    """Default sender: writes the notification to the log."""
    logger.info(
        "Push notification",
        title=message['title'],
        body=message['body'],
        **data,
    )


def notify_order_status(order: Order, *, using: str = DEFAULT_DB_ALIAS) -> None:
    """Queue a status notification to the buyer for after commit."""
    token = order.user.fcm_token
    if not token:
        return

    message = build_status_message(order)
    data = {
        'order_id': str(order.id),
        'type': 'order_status',
        'status': order.status,
    }
    transaction.on_commit(partial(deliver, token, message, data), using=using)


def deliver(token: str, message: dict, data: dict) -> None:
    sender = import_string(settings.NOTIFICATION_BACKEND)
    try:
        sender(token, message, data)
    except Exception as exc:
        logger.warning(
            "Push notification delivery failed",
            order_id=data.get('order_id'),
            error=str(exc),
        )

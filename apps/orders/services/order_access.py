"""Who may see and act on an order."""

from django.db import DEFAULT_DB_ALIAS
from django.db.models import QuerySet

from apps.accounts.models import Role, User

from ..models import Order
from .exceptions import OrderAuthorizationError


def can_manage(order: Order, user: User) -> bool:
    """Lounge owner of the order's lounge, or an admin."""
    return user.is_admin or order.lounge.is_owned_by(user)


def can_view(order: Order, user: User) -> bool:
    return order.user_id == user.id or can_manage(order, user)


def ensure_can_manage(order: Order, user: User, *, action: str = 'manage') -> None:
    if not can_manage(order, user):
        raise OrderAuthorizationError(f"Not authorized to {action} this order")


def ensure_can_view(order: Order, user: User) -> None:
    if not can_view(order, user):
        raise OrderAuthorizationError("Not authorized to view this order")


def orders_visible_to(user: User, *, using: str = DEFAULT_DB_ALIAS) -> QuerySet:
    """
    Orders a user may list.

    Students see their own orders, lounge owners see orders placed at
    lounges they own, admins see everything.
    """
    queryset = Order.objects.using(using)
    if user.is_admin:
        return queryset
    if user.role == Role.LOUNGE:
        return queryset.filter(lounge__owner=user)
    return queryset.filter(user=user)

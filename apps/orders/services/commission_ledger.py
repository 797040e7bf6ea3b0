"""Platform commission ledger."""

from decimal import Decimal, ROUND_HALF_UP

from django.db import DEFAULT_DB_ALIAS

from ..models import Commission, Order

CENT = Decimal('0.01')


def compute_commission(total_price: Decimal, rate: Decimal) -> Decimal:
    """Return the platform cut of ``total_price`` rounded half-up to cents."""
    return (total_price * rate).quantize(CENT, rounding=ROUND_HALF_UP)


class CommissionLedger:
    """
    Append-only record of the platform's cut per order.

    Rows are written once, at order creation, with the rate that was in
    effect then. There is no update or delete path.
    """

    def __init__(self, *, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def record(self, *, order: Order, rate: Decimal) -> Commission:
        return Commission.objects.using(self.using).create(
            order=order,
            lounge_id=order.lounge_id,
            amount=compute_commission(order.total_price, rate),
            rate=rate,
            order_amount=order.total_price,
        )

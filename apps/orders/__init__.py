"""
Orders App - Order Settlement Core

Places orders against a lounge's catalog, settles them from a prepaid
contract or through the payment gateway, records the platform commission,
and redeems each order's QR code exactly once at pickup.

Architecture:
- Models: Order, OrderItem, Payment, Commission
- Services: OrderPlacementService, PaymentResolver, CommissionLedger,
  OrderQRCodeIssuer, QRRedemptionService, OrderStatusService
- Views: OrderViewSet (thin HTTP layer over the services)
"""

from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'orders'

router = SimpleRouter()
router.register(r'', views.OrderViewSet, basename='order')

urlpatterns = [
    # GET    /api/v1/orders/                - List orders
    # POST   /api/v1/orders/                - Place an order
    # GET    /api/v1/orders/{id}/           - Get order details
    # PUT    /api/v1/orders/{id}/status/    - Update order status
    # POST   /api/v1/orders/verify-qr/      - Redeem QR code at pickup
    path('', include(router.urls)),
]

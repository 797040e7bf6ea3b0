from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .exceptions import unwrap_or_raise
from .permissions import IsLoungeOrAdmin
from .serializers import (
    OrderSerializer,
    OrderListSerializer,
    CreateOrderInputSerializer,
    OrderFilterSerializer,
    UpdateStatusInputSerializer,
    VerifyQRInputSerializer,
)
from .services import (
    CartEntry,
    OrderPlacementService,
    OrderQueryService,
    OrderStatusService,
    QRRedemptionService,
)


class OrderPagination(PageNumberPagination):
    """Page/limit pagination with the totals block the clients expect."""
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response({
            'success': True,
            'data': data,
            'pagination': {
                'total': self.page.paginator.count,
                'page': self.page.number,
                'pages': self.page.paginator.num_pages,
            },
        })


class OrderViewSet(viewsets.GenericViewSet):
    """
    Order placement, tracking and hand-over.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Orders visible to the caller (own, own lounges', or all for admins)
    create: Place an order and settle its payment
    retrieve: Get a specific order
    update_status: Move an order through its lifecycle (lounge/admin)
    verify_qr: Redeem an order's QR code at pickup (lounge/admin)
    """

    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = OrderPagination
    lookup_value_regex = '[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'

    def get_permissions(self):
        """Lounge-side actions need the lounge or admin role."""
        if self.action in ['update_status', 'verify_qr']:
            return [IsAuthenticated(), IsLoungeOrAdmin()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == 'list':
            return OrderListSerializer
        elif self.action == 'create':
            return CreateOrderInputSerializer
        elif self.action == 'update_status':
            return UpdateStatusInputSerializer
        elif self.action == 'verify_qr':
            return VerifyQRInputSerializer
        return OrderSerializer

    @extend_schema(
        parameters=[
            OpenApiParameter('status', str, description='Filter by order status'),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
    )
    def list(self, request):
        filter_serializer = OrderFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)

        queryset = unwrap_or_raise(
            OrderQueryService().list_orders(
                user=request.user,
                status=filter_serializer.validated_data.get('status'),
            )
        )

        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @extend_schema(request=CreateOrderInputSerializer, responses={201: OrderSerializer})
    def create(self, request):
        serializer = CreateOrderInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = unwrap_or_raise(
            OrderPlacementService().place_order(
                user=request.user,
                lounge_id=data['lounge_id'],
                entries=[
                    CartEntry(food_id=item['food_id'], quantity=item['quantity'])
                    for item in data['items']
                ],
                payment_method=data['payment_method'],
                contract_id=data.get('contract_id'),
            )
        )

        return Response({
            'success': True,
            'message': 'Order created successfully',
            'data': OrderSerializer(order).data,
        }, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        order = unwrap_or_raise(
            OrderQueryService().get_order(order_id=pk, user=request.user)
        )
        return Response({
            'success': True,
            'data': OrderSerializer(order).data,
        })

    @extend_schema(request=UpdateStatusInputSerializer, responses={200: OrderSerializer})
    @action(detail=True, methods=['put'], url_path='status')
    def update_status(self, request, pk=None):
        """
        Update order status.

        PUT /api/v1/orders/{id}/status/
        Body: {"status": "PREPARING"}
        """
        input_serializer = UpdateStatusInputSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        order = unwrap_or_raise(
            OrderStatusService().change_status(
                order_id=pk,
                status=input_serializer.validated_data['status'],
                changed_by=request.user,
            )
        )

        return Response({
            'success': True,
            'message': 'Order status updated successfully',
            'data': OrderSerializer(order).data,
        })

    @extend_schema(request=VerifyQRInputSerializer, responses={200: OrderSerializer})
    @action(detail=False, methods=['post'], url_path='verify-qr')
    def verify_qr(self, request):
        """
        Verify QR code and mark order as delivered.

        POST /api/v1/orders/verify-qr/
        Body: {"qrCode": "ORDER:...:..."}
        """
        input_serializer = VerifyQRInputSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        order = unwrap_or_raise(
            QRRedemptionService().redeem(
                qr_code=input_serializer.validated_data['qr_code'],
                scanned_by=request.user,
            )
        )

        return Response({
            'success': True,
            'message': 'Order verified and marked as delivered',
            'data': OrderSerializer(order).data,
        })

import uuid

from django.db import transaction
from django.db.models import F
from drf_spectacular.utils import OpenApiParameter, extend_schema
from loguru import logger
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsAdmin
from inventory.models import Product
from utils.dates import parse_date_range
from utils.excel_export import xlsx_response
from utils.exceptions import ConflictError

from .models import Order
from .serializers import OrderCreateSerializer, OrderSerializer, OrderStatusSerializer

ORDER_FILTER_PARAMETERS = [
    OpenApiParameter('start_date', str, description="Created on or after (YYYY-MM-DD)"),
    OpenApiParameter('end_date', str, description="Created on or before (YYYY-MM-DD)"),
    OpenApiParameter('retailer', str, description="Retailer id"),
    OpenApiParameter('status', str, description="Pending, Completed or Cancelled"),
]

ORDER_EXPORT_COLUMNS = [
    # header,                   width, money
    ('Order ID',                  12, False),
    ('Retailer Name - Address',   40, False),
    ('Code',                      15, False),
    ('Product Name',              30, False),
    ('Price',                     12, True),
    ('Qty',                       10, False),
    ('Scheme',                    12, True),
    ('Other Scheme',              12, True),
    ('Total Scheme',              12, True),
    ('Net Price',                 12, True),
    ('Total Litre',               12, False),
    ('Total Sale',                12, True),
    ('Created At',                20, False),
    ('Created By',                20, False),
    ('Status',                    15, False),
]


class OrderViewSet(mixins.CreateModelMixin,
                   mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    Retailer orders

    POST  /api/orders                       – book an order (any authenticated user)
    GET   /api/orders                       – list (admin; ?start_date&end_date&retailer&status)
    GET   /api/orders/{id}                  – retrieve (admin, or the creator)
    GET   /api/orders/mine                  – orders booked by the current user
    POST  /api/orders/{id}/update_status    – Pending -> Completed | Cancelled (admin)
    GET   /api/orders/export                – Excel export, same filters as list (admin)
    """
    queryset = Order.objects.all().select_related('retailer', 'created_by').prefetch_related('items')
    serializer_class = OrderSerializer

    def get_permissions(self):
        if self.action in ('list', 'update_status', 'export'):
            return [IsAdmin()]
        return [IsAuthenticated()]

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if self.action == 'retrieve' and not user.is_admin:
            qs = qs.filter(created_by=user)
        return qs

    def filter_orders(self, qs):
        params = self.request.query_params
        start, end = parse_date_range(params)
        if start:
            qs = qs.filter(created_at__date__gte=start)
        if end:
            qs = qs.filter(created_at__date__lte=end)
        if params.get('retailer'):
            try:
                qs = qs.filter(retailer_id=uuid.UUID(params['retailer']))
            except ValueError:
                raise ValidationError({'retailer': ['Invalid retailer id']})
        if params.get('status'):
            qs = qs.filter(status=params['status'])
        return qs

    @extend_schema(request=OrderCreateSerializer, responses={201: OrderSerializer})
    def create(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = serializer.save(created_by=request.user)
        return Response(serializer.to_representation(order), status=status.HTTP_201_CREATED)

    @extend_schema(parameters=ORDER_FILTER_PARAMETERS)
    def list(self, request, *args, **kwargs):
        orders = self.filter_orders(self.get_queryset())
        return Response(OrderSerializer(orders, many=True).data)

    @action(detail=False, methods=['get'])
    def mine(self, request):
        orders = self.get_queryset().filter(created_by=request.user)
        return Response(OrderSerializer(orders, many=True).data)

    @extend_schema(request=OrderStatusSerializer, responses=OrderSerializer, summary="Update order status")
    @action(detail=True, methods=['post', 'patch'])
    def update_status(self, request, pk=None):
        """
        Move a pending order to Completed or Cancelled.

        Cancelling returns every line's quantity to product stock.
        """
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['status']

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=self.get_object().pk)
            if order.status == new_status:
                raise ConflictError(f"Order is already {order.status}")
            if not order.can_move_to(new_status):
                raise ConflictError(f"Cannot change a {order.status} order to {new_status}")

            if new_status == Order.STATUS_CANCELLED:
                for item in order.items.all():
                    Product.objects.filter(pk=item.product_id).update(stock=F('stock') + item.quantity)

            order.status = new_status
            order.save(update_fields=['status', 'updated_at'])

        logger.info(f"Order {order.short_id} -> {new_status} by {request.user.email}")
        return Response(OrderSerializer(order).data)

    @extend_schema(parameters=ORDER_FILTER_PARAMETERS, summary="Export orders to Excel")
    @action(detail=False, methods=['get'])
    def export(self, request):
        orders = self.filter_orders(self.get_queryset()).order_by('-created_at')

        rows = []
        for order in orders:
            created = order.created_at
            for item in order.items.all():
                rows.append([
                    order.short_id,
                    f"{order.retailer_name} - {order.retailer.address1}",
                    item.code,
                    item.name,
                    item.price,
                    item.quantity,
                    item.scheme,
                    item.other_scheme,
                    item.total_scheme,
                    item.net_price,
                    item.total_litres,
                    item.total_sale,
                    created,
                    order.created_by_name,
                    order.status,
                ])

        return xlsx_response(ORDER_EXPORT_COLUMNS, rows, 'orders_export', sheet_title='Orders')

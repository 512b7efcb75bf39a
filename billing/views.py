import uuid

from django.db import transaction
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiParameter, extend_schema
from loguru import logger
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsAdmin, IsStaffMember
from imports.stream import streaming_import_response
from utils.days import normalize_day
from utils.exceptions import ConflictError

from .importers import BillImporter
from .models import Bill, Collection
from .reconciliation import reconcile_bill, record_collection, settle_bill
from .serializers import (
    AssignBillSerializer,
    BillCreateSerializer,
    BillListSerializer,
    BillSerializer,
    BillUpdateSerializer,
    CollectionCreateSerializer,
    CollectionSerializer,
    MarkPaidSerializer,
)


class HistoryPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class BillViewSet(viewsets.ModelViewSet):
    """
    Bills

    Endpoints
    ---------
    Standard CRUD:
        GET    /api/bills                       – list (admin: all, staff: assigned to them)
        POST   /api/bills                       – create (admin)
        GET    /api/bills/{id}                  – retrieve (includes collections[])
        PUT    /api/bills/{id}                  – update descriptive fields (admin)
        DELETE /api/bills/{id}                  – delete, only without collections (admin)

    Custom actions:
        POST   /api/bills/{id}/assign           – assign to a staff member (admin)
        GET    /api/bills/{id}/collections      – collections recorded on the bill
        POST   /api/bills/{id}/mark_paid        – collect the remaining due in cash (assigned staff)
        GET    /api/bills/by_collection_day     – unpaid bills for ?day= (staff)
        GET    /api/bills/assigned_today        – bills assigned today (staff)
        GET    /api/bills/history               – own bill history, paginated (staff)
        POST   /api/bills/import                – spreadsheet import, NDJSON progress stream (admin)
    """
    queryset = Bill.objects.all().select_related('assigned_to', 'created_by')

    filter_backends  = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'collection_day', 'assigned_to']
    search_fields    = ['bill_number', 'retailer_name']
    ordering_fields  = ['due_date', 'bill_date', 'amount', 'due_amount', 'created_at']
    ordering         = ['due_date', 'bill_number']

    ADMIN_ACTIONS = ('create', 'update', 'partial_update', 'destroy', 'assign', 'import_bills')
    STAFF_ACTIONS = ('mark_paid', 'by_collection_day', 'assigned_today', 'history')

    def get_permissions(self):
        if self.action in self.ADMIN_ACTIONS:
            return [IsAdmin()]
        if self.action in self.STAFF_ACTIONS:
            return [IsStaffMember()]
        return [IsAuthenticated()]

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if not user.is_admin:
            qs = qs.filter(assigned_to=user)
        if self.action == 'retrieve':
            qs = qs.prefetch_related('collections__collected_by')
        return qs

    def get_serializer_class(self):
        if self.action == 'create':
            return BillCreateSerializer
        if self.action in ('update', 'partial_update'):
            return BillUpdateSerializer
        if self.action in ('list', 'by_collection_day', 'assigned_today', 'history'):
            return BillListSerializer
        return BillSerializer

    def _ensure_unique_number(self, bill_number, instance=None):
        qs = Bill.objects.filter(bill_number=bill_number)
        if instance is not None:
            qs = qs.exclude(pk=instance.pk)
        if qs.exists():
            raise ConflictError(f"Bill number {bill_number} already exists")

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self._ensure_unique_number(serializer.validated_data['bill_number'])

        bill = serializer.save(created_by=request.user)
        logger.info(f"Bill created: {bill.bill_number} ({bill.amount}) by {request.user.email}")
        return Response(BillSerializer(bill).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        bill = self.get_object()
        if bill.status == Bill.STATUS_PAID:
            raise ConflictError('Paid bills cannot be edited')

        serializer = self.get_serializer(bill, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        bill_number = serializer.validated_data.get('bill_number')
        if bill_number:
            self._ensure_unique_number(bill_number, bill)

        with transaction.atomic():
            amount_changed = (
                'amount' in serializer.validated_data
                and serializer.validated_data['amount'] != bill.amount
            )
            bill = serializer.save()
            if amount_changed:
                bill.log(f"Amount changed to {bill.amount}")
                bill.save(update_fields=['history', 'updated_at'])
                bill = reconcile_bill(bill)

        return Response(BillSerializer(bill).data)

    def destroy(self, request, *args, **kwargs):
        bill = self.get_object()
        if bill.collections.exists():
            raise ConflictError('Bills with recorded collections cannot be deleted')
        bill.delete()
        logger.info(f"Bill deleted: {bill.bill_number} by {request.user.email}")
        return Response({'message': 'Bill deleted successfully'})

    # ──────────────────────────────────────────────────────────────────────────
    # Assignment & payment
    # ──────────────────────────────────────────────────────────────────────────

    @extend_schema(request=AssignBillSerializer, responses=BillSerializer, summary="Assign bill to staff")
    @action(detail=True, methods=['post'])
    def assign(self, request, pk=None):
        bill = self.get_object()
        if bill.status == Bill.STATUS_PAID:
            raise ConflictError('Paid bills cannot be reassigned')

        serializer = AssignBillSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill.assign_to(serializer.validated_data['staff_id'])
        bill.save(update_fields=[
            'assigned_to', 'assigned_to_name', 'assigned_date', 'history', 'updated_at'
        ])
        return Response(BillSerializer(bill).data)

    @extend_schema(responses=CollectionSerializer(many=True), summary="Collections on a bill")
    @action(detail=True, methods=['get'])
    def collections(self, request, pk=None):
        bill = self.get_object()
        collections = bill.collections.select_related('collected_by', 'bill')
        return Response(CollectionSerializer(collections, many=True).data)

    @extend_schema(request=MarkPaidSerializer, responses=BillSerializer, summary="Collect remaining due in cash")
    @action(detail=True, methods=['post'])
    def mark_paid(self, request, pk=None):
        """
        Settle the remaining due of an assigned bill as one cash collection.

        POST /api/bills/{id}/mark_paid
        {"remarks": "paid at counter"}      // optional
        """
        bill = self.get_object()
        if bill.assigned_to_id != request.user.pk:
            raise PermissionDenied('This bill is not assigned to you')
        if bill.status == Bill.STATUS_PAID:
            raise ConflictError('Bill is already fully paid')

        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        _, bill = settle_bill(bill, request.user, remarks=serializer.validated_data['remarks'])
        return Response(BillSerializer(bill).data)

    # ──────────────────────────────────────────────────────────────────────────
    # Staff views
    # ──────────────────────────────────────────────────────────────────────────

    @extend_schema(
        parameters=[OpenApiParameter('day', str, required=True, description="e.g. Monday or MON")],
        summary="Unpaid bills for a collection day",
    )
    @action(detail=False, methods=['get'])
    def by_collection_day(self, request):
        day = normalize_day(request.query_params.get('day'))
        if not day:
            raise ValidationError({'day': ['A valid day is required']})

        bills = (
            self.get_queryset()
            .filter(collection_day=day)
            .exclude(status=Bill.STATUS_PAID)
        )
        return Response(BillListSerializer(bills, many=True).data)

    @action(detail=False, methods=['get'])
    def assigned_today(self, request):
        today = timezone.localdate()
        bills = self.get_queryset().filter(assigned_date__date=today)
        return Response(BillListSerializer(bills, many=True).data)

    @extend_schema(
        parameters=[OpenApiParameter('status', str, description="Paid, Unpaid or Partially Paid")],
        summary="Bill history of the current staff member",
    )
    @action(detail=False, methods=['get'])
    def history(self, request):
        bills = self.get_queryset().order_by('-updated_at')
        status_filter = request.query_params.get('status')
        if status_filter:
            bills = bills.filter(status=status_filter)

        paginator = HistoryPagination()
        page = paginator.paginate_queryset(bills, request, view=self)
        return paginator.get_paginated_response(BillListSerializer(page, many=True).data)

    @extend_schema(summary="Import bills from a spreadsheet (NDJSON progress stream)")
    @action(
        detail=False,
        methods=['post'],
        url_path='import',
        parser_classes=[MultiPartParser, FormParser],
    )
    def import_bills(self, request):
        return streaming_import_response(request, BillImporter)


class CollectionViewSet(mixins.CreateModelMixin,
                        mixins.ListModelMixin,
                        mixins.RetrieveModelMixin,
                        viewsets.GenericViewSet):
    """
    Collections (payments against bills)

    POST /api/collections                   – record a payment and reconcile the bill
    GET  /api/collections                   – list (admin: all, staff: their own)
    GET  /api/collections/{id}              – retrieve
    GET  /api/collections/bill/{bill_id}    – collections on one bill
    """
    queryset = Collection.objects.all().select_related('bill', 'collected_by')
    serializer_class = CollectionSerializer
    permission_classes = [IsAuthenticated]
    filter_backends  = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['payment_mode', 'collected_by', 'bill']
    ordering_fields  = ['collected_on', 'amount_collected']
    ordering         = ['-collected_on']

    def get_queryset(self):
        qs = super().get_queryset()
        if not self.request.user.is_admin:
            qs = qs.filter(collected_by=self.request.user)
        return qs

    @extend_schema(request=CollectionCreateSerializer, responses={201: CollectionSerializer})
    def create(self, request, *args, **kwargs):
        serializer = CollectionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        collection, bill = record_collection(
            data['bill'],
            data['amountCollected'],
            data['paymentMode'],
            request.user,
            payment_details=data.get('paymentDetails'),
            remarks=data.get('remarks', ''),
        )
        payload = CollectionSerializer(collection).data
        payload['bill_status'] = bill.status
        payload['bill_due_amount'] = str(bill.due_amount)
        return Response(payload, status=status.HTTP_201_CREATED)

    @extend_schema(responses=CollectionSerializer(many=True), summary="Collections on a bill")
    @action(detail=False, methods=['get'], url_path=r'bill/(?P<bill_id>[^/.]+)')
    def by_bill(self, request, bill_id=None):
        try:
            bill_id = uuid.UUID(str(bill_id))
        except ValueError:
            return Response({'message': 'Bill not found'}, status=status.HTTP_404_NOT_FOUND)

        bills = Bill.objects.all()
        if not request.user.is_admin:
            bills = bills.filter(assigned_to=request.user)
        if not bills.filter(pk=bill_id).exists():
            return Response({'message': 'Bill not found'}, status=status.HTTP_404_NOT_FOUND)

        collections = Collection.objects.filter(bill_id=bill_id).select_related('bill', 'collected_by')
        return Response(CollectionSerializer(collections, many=True).data)

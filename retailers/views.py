from django.db.models import ProtectedError
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from loguru import logger
from rest_framework import filters, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from accounts.permissions import IsAdmin, IsAdminOrReadOnly
from imports.stream import streaming_import_response
from utils.csv_export import csv_response
from utils.exceptions import ConflictError

from .importers import RetailerImporter
from .models import Retailer
from .serializers import AssignStaffSerializer, RetailerSerializer

RETAILER_EXPORT_COLUMNS = {
    'name':             'Retailer Name',
    'address1':         'Address 1',
    'address2':         'Address 2',
    'day_assigned':     'Day Assigned',
    'assigned_to.name': 'Assigned To',
}


class RetailerViewSet(viewsets.ModelViewSet):
    """
    Retailers

    GET    /api/retailers               – list (everyone)
    POST   /api/retailers               – create (admin)
    PUT    /api/retailers/{id}          – update (admin)
    DELETE /api/retailers/{id}          – delete (admin)
    POST   /api/retailers/{id}/assign   – assign to a staff member (admin)
    POST   /api/retailers/import        – spreadsheet import, NDJSON progress stream (admin)
    GET    /api/retailers/export        – CSV export (admin)
    """
    queryset = Retailer.objects.all().select_related('assigned_to', 'created_by')
    serializer_class = RetailerSerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['assigned_to', 'day_assigned']
    search_fields = ['name', 'address1', 'address2']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def _ensure_unique_name(self, name, instance=None):
        qs = Retailer.objects.filter(name__iexact=name)
        if instance is not None:
            qs = qs.exclude(pk=instance.pk)
        if qs.exists():
            raise ConflictError(f"Retailer \"{name}\" already exists")

    def perform_create(self, serializer):
        self._ensure_unique_name(serializer.validated_data['name'])
        retailer = serializer.save(created_by=self.request.user)
        logger.info(f"Retailer created: {retailer.name}")

    def perform_update(self, serializer):
        name = serializer.validated_data.get('name')
        if name:
            self._ensure_unique_name(name, serializer.instance)
        serializer.save()

    def destroy(self, request, *args, **kwargs):
        retailer = self.get_object()
        try:
            retailer.delete()
        except ProtectedError:
            raise ConflictError("Retailer has orders and cannot be deleted")
        return Response({'message': 'Retailer removed successfully'})

    @extend_schema(request=AssignStaffSerializer, responses=RetailerSerializer, summary="Assign retailer to staff")
    @action(detail=True, methods=['post'], permission_classes=[IsAdmin])
    def assign(self, request, pk=None):
        retailer = self.get_object()
        serializer = AssignStaffSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        retailer.assigned_to = serializer.validated_data['staff_id']
        retailer.save(update_fields=['assigned_to', 'updated_at'])
        return Response(RetailerSerializer(retailer).data)

    @extend_schema(summary="Import retailers from a spreadsheet (NDJSON progress stream)")
    @action(
        detail=False,
        methods=['post'],
        url_path='import',
        permission_classes=[IsAdmin],
        parser_classes=[MultiPartParser, FormParser],
    )
    def import_retailers(self, request):
        return streaming_import_response(request, RetailerImporter)

    @action(detail=False, methods=['get'], permission_classes=[IsAdmin])
    def export(self, request):
        retailers = self.filter_queryset(self.get_queryset())
        return csv_response(retailers, RETAILER_EXPORT_COLUMNS, 'retailers_export')

from django.db.models import ProtectedError
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from loguru import logger
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from accounts.permissions import IsAdmin, IsAdminOrReadOnly
from imports.stream import streaming_import_response
from utils.csv_export import csv_response
from utils.exceptions import ConflictError

from .importers import ProductImporter
from .models import Product
from .serializers import ProductSerializer, StockUpdateSerializer

PRODUCT_EXPORT_COLUMNS = {
    'code':    'Code',
    'name':    'Product Name',
    'company': 'Company',
    'mrp':     'MRP',
    'price':   'Price',
    'weight':  'Weight',
    'scheme':  'Scheme',
    'stock':   'Stock',
}


class ProductViewSet(viewsets.ModelViewSet):
    """
    Product master

    GET    /api/products                – list (filter ?company=)
    POST   /api/products                – create (admin)
    GET    /api/products/{id}           – retrieve
    PUT    /api/products/{id}           – update (admin)
    DELETE /api/products/{id}           – delete (admin)
    PATCH  /api/products/{id}/stock     – set stock quantity (admin)
    POST   /api/products/import         – spreadsheet import, NDJSON progress stream (admin)
    GET    /api/products/export         – CSV export (admin)
    """
    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['company', 'code']
    search_fields = ['code', 'name', 'company']
    ordering_fields = ['name', 'code', 'stock', 'price']
    ordering = ['name']

    def _ensure_unique_code(self, code, instance=None):
        qs = Product.objects.filter(code=code)
        if instance is not None:
            qs = qs.exclude(pk=instance.pk)
        if qs.exists():
            raise ConflictError(f"Product code {code} already exists")

    def perform_create(self, serializer):
        self._ensure_unique_code(serializer.validated_data['code'])
        product = serializer.save()
        logger.info(f"Product created: {product.code}")

    def perform_update(self, serializer):
        code = serializer.validated_data.get('code')
        if code:
            self._ensure_unique_code(code, serializer.instance)
        serializer.save()

    def perform_destroy(self, instance):
        try:
            instance.delete()
        except ProtectedError:
            raise ConflictError('Product is referenced by orders and cannot be deleted')

    @extend_schema(request=StockUpdateSerializer, responses=ProductSerializer, summary="Set stock")
    @action(detail=True, methods=['patch'], permission_classes=[IsAdmin])
    def stock(self, request, pk=None):
        product = self.get_object()
        serializer = StockUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        product.stock = serializer.validated_data['stock']
        product.save(update_fields=['stock', 'updated_at'])
        return Response(ProductSerializer(product).data)

    @extend_schema(summary="Import products from a spreadsheet (NDJSON progress stream)")
    @action(
        detail=False,
        methods=['post'],
        url_path='import',
        permission_classes=[IsAdmin],
        parser_classes=[MultiPartParser, FormParser],
    )
    def import_products(self, request):
        return streaming_import_response(request, ProductImporter)

    @action(detail=False, methods=['get'], permission_classes=[IsAdmin])
    def export(self, request):
        products = self.filter_queryset(self.get_queryset())
        return csv_response(products, PRODUCT_EXPORT_COLUMNS, 'products_export')

    def destroy(self, request, *args, **kwargs):
        super().destroy(request, *args, **kwargs)
        return Response({'message': 'Product deleted successfully'}, status=status.HTTP_200_OK)

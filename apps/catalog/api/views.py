import logging

from django.db.models import Prefetch
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters, status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.catalog import media
from apps.catalog.models import (
    Category,
    Product,
    Attribute,
    ProductVariation,
)
from apps.catalog.services import (
    CatalogService,
    ProductAdminService,
    VariationNavigationService,
)
from apps.core.exceptions import NotFoundError, StorageError
from apps.core.permissions import IsStoreAdmin
from apps.downloads.storage import get_storage
from .filters import ProductFilter, VariationFilter
from .serializers import (
    AttributeSerializer,
    AttributeCreateSerializer,
    CategorySerializer,
    CategoryWriteSerializer,
    ImageDeleteSerializer,
    ImageUploadSerializer,
    ProductAdminSerializer,
    ProductVariationSerializer,
    ProductWriteSerializer,
    VariationInputSerializer,
)

logger = logging.getLogger(__name__)


def _int_param(params, name, default, minimum=0, maximum=100):
    try:
        value = int(params.get(name, default))
    except (TypeError, ValueError):
        return default
    return max(minimum, min(value, maximum))


def cleanup_external_storage(references):
    """Remove R2 files and Cloudinary images left behind by a delete. Best-effort."""
    file_keys = references.get('file_keys') or []
    public_ids = references.get('image_public_ids') or []
    report = {'files_deleted': 0, 'files_failed': [], 'images': {'deleted': [], 'failed': []}}

    if file_keys:
        try:
            storage = get_storage()
        except StorageError as e:
            logger.warning(f"R2 indisponível para limpeza: {e}")
            report['files_failed'] = list(file_keys)
        else:
            for key in file_keys:
                try:
                    storage.delete(key)
                    report['files_deleted'] += 1
                except StorageError as e:
                    logger.warning(f"Falha ao deletar {key} do R2: {e}")
                    report['files_failed'].append(key)

    if public_ids:
        try:
            report['images'] = media.delete_images(public_ids)
        except StorageError as e:
            logger.warning(f"Cloudinary indisponível para limpeza: {e}")
            report['images']['failed'] = list(public_ids)

    return report


def _admin_product_queryset():
    return Product.objects.select_related('category').prefetch_related(
        'images',
        'files',
        'product_attributes',
        Prefetch(
            'variations',
            queryset=ProductVariation.objects.prefetch_related(
                'images', 'files', 'variation_values__attribute', 'variation_values__value'
            )
        ),
    )


# =============================================================================
# Public API
# =============================================================================

class ProductViewSet(viewsets.ViewSet):
    """
    Public product catalog.

    list: Active products, paginated with limit/offset
    retrieve: Product detail by slug with variations, attributes and images
    """
    permission_classes = [AllowAny]
    lookup_field = 'slug'

    def list(self, request):
        params = request.query_params
        result = CatalogService.list_products(
            limit=_int_param(params, 'limit', 10, minimum=1),
            offset=_int_param(params, 'offset', 0, maximum=10_000),
            featured=params.get('featured') in ('true', '1'),
            category=params.get('category'),
            search=params.get('search'),
        )
        return Response(result)

    def retrieve(self, request, slug=None):
        return Response(CatalogService.get_product_by_slug(slug))

    @action(detail=True, methods=['get'])
    def match(self, request, slug=None):
        """
        Find the variation matching attribute selections.

        Query params: any attribute_slug=value_slug pairs (e.g. ?formato=a4&idioma=pt)
        """
        product = Product.objects.filter(slug=slug, is_active=True).first()
        if product is None:
            raise NotFoundError('Produto não encontrado', entity_type='product', entity_id=slug)

        exclude_params = ['format']
        selections = {
            k: v for k, v in request.query_params.items()
            if k not in exclude_params
        }
        return Response(VariationNavigationService.find_match(product, selections))


class CategoryViewSet(viewsets.ViewSet):
    """Public category tree."""
    permission_classes = [AllowAny]

    def list(self, request):
        return Response({'categories': CatalogService.list_categories()})


# =============================================================================
# Admin API
# =============================================================================

class AdminProductViewSet(viewsets.ModelViewSet):
    """
    Back-office product management.

    list: Paginated with search/page/limit (default 20), newest first
    create / update / partial_update: nested variations, images, files and attributes
    destroy: Deletes the product and cleans R2 and Cloudinary
    """
    permission_classes = [IsStoreAdmin]
    queryset = Product.objects.all()
    filter_backends = [DjangoFilterBackend]
    filterset_class = ProductFilter

    def get_queryset(self):
        if self.action == 'list':
            return Product.objects.all()
        return _admin_product_queryset()

    def get_serializer_class(self):
        if self.action in ('create', 'update', 'partial_update'):
            return ProductWriteSerializer
        return ProductAdminSerializer

    def _detail_response(self, product, status_code=status.HTTP_200_OK):
        product = _admin_product_queryset().get(pk=product.pk)
        return Response(ProductAdminSerializer(product).data, status=status_code)

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        params = request.query_params
        result = ProductAdminService.list_products(
            queryset=queryset,
            search=params.get('search'),
            page=_int_param(params, 'page', 1, minimum=1, maximum=10_000),
            limit=_int_param(params, 'limit', 20, minimum=1),
        )
        return Response(result)

    def create(self, request, *args, **kwargs):
        serializer = ProductWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = ProductAdminService.create_product(serializer.validated_data)
        return self._detail_response(product, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        product = self.get_object()
        serializer = ProductWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        product = ProductAdminService.update_product(product, serializer.validated_data)
        return self._detail_response(product)

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        references = ProductAdminService.delete_product(product)
        cleanup = cleanup_external_storage(references)
        return Response({'status': 'ok', 'cleanup': cleanup})

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(ProductAdminService.product_stats())

    @action(detail=True, methods=['get', 'post'])
    def variations(self, request, pk=None):
        """List or add variations of a product."""
        product = self.get_object()
        if request.method == 'POST':
            serializer = VariationInputSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            variation = ProductAdminService.add_variation(product, serializer.validated_data)
            return Response(
                ProductVariationSerializer(variation).data,
                status=status.HTTP_201_CREATED
            )

        queryset = VariationFilter(
            request.query_params,
            queryset=product.variations.prefetch_related(
                'images', 'files', 'variation_values__attribute', 'variation_values__value'
            )
        ).qs
        return Response(ProductVariationSerializer(queryset, many=True).data)

    @action(
        detail=True,
        methods=['get', 'put', 'patch', 'delete'],
        url_path=r'variations/(?P<variation_id>\d+)'
    )
    def variation_detail(self, request, pk=None, variation_id=None):
        """Get, update or delete one variation; it must belong to this product."""
        variation = ProductAdminService.get_variation(pk, variation_id)

        if request.method == 'DELETE':
            references = ProductAdminService.delete_variation(variation)
            cleanup = cleanup_external_storage(references)
            return Response({'status': 'ok', 'cleanup': cleanup})

        if request.method in ('PUT', 'PATCH'):
            serializer = VariationInputSerializer(
                data=request.data, partial=request.method == 'PATCH'
            )
            serializer.is_valid(raise_exception=True)
            data = dict(serializer.validated_data)
            data.pop('id', None)
            variation = ProductAdminService.update_variation(variation, data)

        return Response(ProductVariationSerializer(variation).data)


class AdminAttributeViewSet(viewsets.ModelViewSet):
    """
    Attributes with their values.
    list loads every value with a single IN query.
    """
    permission_classes = [IsStoreAdmin]
    queryset = Attribute.objects.prefetch_related('values')
    serializer_class = AttributeSerializer
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name']
    ordering = ['sort_order', 'name']

    def list(self, request, *args, **kwargs):
        return Response({'attributes': ProductAdminService.list_attributes()})

    def create(self, request, *args, **kwargs):
        serializer = AttributeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attribute = ProductAdminService.create_attribute(serializer.validated_data)
        attribute = Attribute.objects.prefetch_related('values').get(pk=attribute.pk)
        return Response(AttributeSerializer(attribute).data, status=status.HTTP_201_CREATED)


class AdminCategoryViewSet(viewsets.ModelViewSet):
    permission_classes = [IsStoreAdmin]
    queryset = Category.objects.select_related('parent')
    serializer_class = CategorySerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['is_active', 'parent']
    search_fields = ['name', 'slug']

    def create(self, request, *args, **kwargs):
        serializer = CategoryWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        category = ProductAdminService.create_category(serializer.validated_data)
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)


class AdminImageView(APIView):
    """Upload (base64) and delete images on Cloudinary."""
    permission_classes = [IsStoreAdmin]

    def post(self, request):
        serializer = ImageUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = media.upload_image(
            serializer.validated_data['image'],
            folder=serializer.validated_data['folder'],
            filename=serializer.validated_data.get('filename'),
        )
        return Response(result, status=status.HTTP_201_CREATED)

    def delete(self, request):
        serializer = ImageDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        deleted = media.delete_image(serializer.validated_data['public_id'])
        return Response({'status': 'ok', 'deleted': deleted})

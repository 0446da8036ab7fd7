from decimal import Decimal

from rest_framework import serializers

from apps.catalog.models import (
    Category,
    Product,
    Attribute,
    AttributeValue,
    ProductVariation,
    VariationAttributeValue,
    ProductImage,
    DigitalFile,
)

MIN_PRICE = Decimal('0.01')


# =============================================================================
# Attribute Serializers
# =============================================================================

class AttributeValueSerializer(serializers.ModelSerializer):
    class Meta:
        model = AttributeValue
        fields = ['id', 'value', 'slug', 'sort_order', 'is_default']


class AttributeSerializer(serializers.ModelSerializer):
    values = AttributeValueSerializer(many=True, read_only=True)

    class Meta:
        model = Attribute
        fields = ['id', 'name', 'slug', 'sort_order', 'is_active', 'values']


class AttributeValueInputSerializer(serializers.Serializer):
    value = serializers.CharField(max_length=100)
    slug = serializers.SlugField(max_length=100, required=False)
    sort_order = serializers.IntegerField(min_value=0, required=False)
    is_default = serializers.BooleanField(required=False)


class AttributeCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    slug = serializers.SlugField(max_length=100, required=False)
    sort_order = serializers.IntegerField(min_value=0, required=False)
    is_active = serializers.BooleanField(required=False)
    values = AttributeValueInputSerializer(many=True, required=False)


# =============================================================================
# Category Serializers
# =============================================================================

class CategorySerializer(serializers.ModelSerializer):
    full_path = serializers.CharField(read_only=True)
    parent_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Category
        fields = [
            'id', 'name', 'slug', 'parent_id', 'full_path', 'description',
            'sort_order', 'is_active'
        ]


class CategoryWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    slug = serializers.SlugField(max_length=200, required=False)
    parent_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True)
    sort_order = serializers.IntegerField(min_value=0, required=False)
    is_active = serializers.BooleanField(required=False)


# =============================================================================
# Image & File Serializers
# =============================================================================

class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = [
            'id', 'public_id', 'url', 'alt', 'width', 'height', 'format',
            'bytes', 'sort_order', 'is_main'
        ]


class DigitalFileSerializer(serializers.ModelSerializer):
    class Meta:
        model = DigitalFile
        fields = ['id', 'name', 'original_name', 'mime_type', 'size', 'path', 'hash']


class ImageInputSerializer(serializers.Serializer):
    public_id = serializers.CharField(max_length=255, required=False, allow_blank=True)
    url = serializers.URLField(max_length=500)
    alt = serializers.CharField(max_length=255, required=False, allow_blank=True)
    width = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    height = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    format = serializers.CharField(max_length=20, required=False, allow_blank=True)
    bytes = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    sort_order = serializers.IntegerField(min_value=0, required=False)
    is_main = serializers.BooleanField(required=False)


class FileInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    original_name = serializers.CharField(max_length=255)
    mime_type = serializers.CharField(max_length=100, required=False)
    size = serializers.IntegerField(min_value=0, required=False)
    path = serializers.CharField(max_length=500)
    hash = serializers.CharField(max_length=64, required=False, allow_blank=True)


# =============================================================================
# Variation Serializers
# =============================================================================

class VariationAttributeValueSerializer(serializers.ModelSerializer):
    attribute_name = serializers.CharField(source='attribute.name', read_only=True)
    attribute_slug = serializers.CharField(source='attribute.slug', read_only=True)
    value_id = serializers.IntegerField(source='value.id', read_only=True)
    value = serializers.CharField(source='value.value', read_only=True)
    value_slug = serializers.CharField(source='value.slug', read_only=True)

    class Meta:
        model = VariationAttributeValue
        fields = [
            'id', 'attribute_id', 'attribute_name', 'attribute_slug',
            'value_id', 'value', 'value_slug'
        ]


class ProductVariationSerializer(serializers.ModelSerializer):
    """Full variation with images, files and attribute values (admin)."""
    images = ProductImageSerializer(many=True, read_only=True)
    files = DigitalFileSerializer(many=True, read_only=True)
    attribute_values = VariationAttributeValueSerializer(
        source='variation_values', many=True, read_only=True
    )

    class Meta:
        model = ProductVariation
        fields = [
            'id', 'product_id', 'name', 'slug', 'price', 'is_active', 'sort_order',
            'images', 'files', 'attribute_values', 'created_at', 'updated_at'
        ]


class VariationValueInputSerializer(serializers.Serializer):
    attribute_id = serializers.IntegerField(required=False)
    value_id = serializers.IntegerField()


class VariationInputSerializer(serializers.Serializer):
    id = serializers.IntegerField(required=False)
    name = serializers.CharField(max_length=255)
    slug = serializers.SlugField(max_length=255, required=False)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=MIN_PRICE)
    is_active = serializers.BooleanField(required=False)
    sort_order = serializers.IntegerField(min_value=0, required=False)
    images = ImageInputSerializer(many=True, required=False)
    files = FileInputSerializer(many=True, required=False)
    attribute_values = VariationValueInputSerializer(many=True, required=False)


# =============================================================================
# Product Serializers
# =============================================================================

class ProductAdminSerializer(serializers.ModelSerializer):
    """Product as the back office edits it."""
    category = CategorySerializer(read_only=True)
    images = ProductImageSerializer(many=True, read_only=True)
    files = DigitalFileSerializer(many=True, read_only=True)
    variations = ProductVariationSerializer(many=True, read_only=True)
    attribute_ids = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'slug', 'description', 'short_description', 'price',
            'category', 'is_active', 'is_featured', 'seo_title', 'seo_description',
            'images', 'files', 'variations', 'attribute_ids',
            'created_at', 'updated_at'
        ]

    def get_attribute_ids(self, obj):
        return [pa.attribute_id for pa in obj.product_attributes.all()]


class ProductWriteSerializer(serializers.Serializer):
    """
    Create/update payload. On partial updates only the keys sent are
    applied; sending `variations`, `images`, `files` or `attribute_ids`
    replaces that collection.
    """
    name = serializers.CharField(max_length=255)
    slug = serializers.SlugField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    short_description = serializers.CharField(required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=MIN_PRICE)
    category_id = serializers.IntegerField(required=False, allow_null=True)
    is_active = serializers.BooleanField(required=False)
    is_featured = serializers.BooleanField(required=False)
    seo_title = serializers.CharField(max_length=255, required=False, allow_blank=True)
    seo_description = serializers.CharField(required=False, allow_blank=True)
    images = ImageInputSerializer(many=True, required=False)
    files = FileInputSerializer(many=True, required=False)
    attribute_ids = serializers.ListField(child=serializers.IntegerField(), required=False)
    variations = VariationInputSerializer(many=True, required=False)


class ImageUploadSerializer(serializers.Serializer):
    image = serializers.CharField()
    folder = serializers.ChoiceField(choices=['products', 'variations'], default='products')
    filename = serializers.CharField(max_length=255, required=False)


class ImageDeleteSerializer(serializers.Serializer):
    public_id = serializers.CharField(max_length=255)

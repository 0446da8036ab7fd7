from django_filters import rest_framework as filters

from apps.catalog.models import Product, ProductVariation


class ProductFilter(filters.FilterSet):
    """Back-office product filters."""

    category = filters.CharFilter(field_name='category__slug')
    category_id = filters.NumberFilter(field_name='category__id')

    # Price filters
    min_price = filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = filters.NumberFilter(field_name='price', lookup_expr='lte')

    has_variations = filters.BooleanFilter(method='filter_has_variations')

    class Meta:
        model = Product
        fields = ['category', 'category_id', 'is_active', 'is_featured']

    def filter_has_variations(self, queryset, name, value):
        if value is None:
            return queryset
        return queryset.filter(variations__isnull=not value).distinct()


class VariationFilter(filters.FilterSet):
    """
    Filter variations by attribute in format: attribute_slug:value_slug
    Example: ?attribute=formato:a4
    """

    attribute = filters.CharFilter(method='filter_by_attribute')

    class Meta:
        model = ProductVariation
        fields = ['is_active']

    def filter_by_attribute(self, queryset, name, value):
        if ':' not in value:
            return queryset

        attr_slug, value_slug = value.split(':', 1)
        return queryset.filter(
            variation_values__attribute__slug=attr_slug,
            variation_values__value__slug=value_slug
        )

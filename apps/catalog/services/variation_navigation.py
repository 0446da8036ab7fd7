"""
Service for choosing a variation from attribute selections.
Which values are selectable is INFERRED from the product's active variations.
"""

from typing import Dict, List, Optional, Any

from apps.catalog.models import (
    Product,
    Attribute,
    AttributeValue,
    ProductVariation,
)


class VariationNavigationService:
    """
    Resolve attribute selections (e.g. {'formato': 'a4', 'idioma': 'pt'})
    into variations and selectable values.
    """

    @staticmethod
    def _filter_by_selections(queryset, selections: Dict[str, str], skip: Optional[str] = None):
        for attr_slug, value_slug in selections.items():
            if attr_slug == skip:
                continue
            queryset = queryset.filter(
                variation_values__attribute__slug=attr_slug,
                variation_values__value__slug=value_slug
            )
        return queryset

    @staticmethod
    def get_available_values(
        product: Product,
        current_selections: Dict[str, str],
        target_attribute_slug: str
    ) -> List[AttributeValue]:
        """
        Given current selections, return which values are available for the target attribute.

        Example:
            current_selections = {'idioma': 'es'}
            target_attribute_slug = 'formato'
            -> Returns only [A4] when the Spanish edition exists only in A4
        """
        queryset = ProductVariation.objects.filter(product=product, is_active=True)
        queryset = VariationNavigationService._filter_by_selections(
            queryset, current_selections, skip=target_attribute_slug
        )

        return list(AttributeValue.objects.filter(
            attribute__slug=target_attribute_slug,
            variations__in=queryset
        ).distinct().order_by('sort_order', 'value'))

    @staticmethod
    def get_all_available_values(
        product: Product,
        current_selections: Dict[str, str]
    ) -> Dict[str, Dict[str, Any]]:
        """Available values for every attribute used by the product's variations."""
        attributes = Attribute.objects.filter(
            values__variations__product=product,
            values__variations__is_active=True
        ).distinct().order_by('sort_order', 'name')

        result = {}
        for attribute in attributes:
            available = VariationNavigationService.get_available_values(
                product, current_selections, attribute.slug
            )
            current_value = current_selections.get(attribute.slug)
            result[attribute.slug] = {
                'name': attribute.name,
                'slug': attribute.slug,
                'values': [
                    {
                        'id': value.id,
                        'value': value.value,
                        'slug': value.slug,
                        'is_selected': value.slug == current_value,
                    }
                    for value in available
                ],
            }
        return result

    @staticmethod
    def find_variation(
        product: Product,
        selections: Dict[str, str]
    ) -> Optional[ProductVariation]:
        """
        Active variation whose attribute values match every selection.
        With no selections the first active variation is returned.
        """
        queryset = ProductVariation.objects.filter(product=product, is_active=True)
        if not selections:
            return queryset.first()
        return VariationNavigationService._filter_by_selections(queryset, selections).first()

    @staticmethod
    def find_match(product: Product, selections: Dict[str, str]) -> Dict[str, Any]:
        variation = VariationNavigationService.find_variation(product, selections)
        available_values = VariationNavigationService.get_all_available_values(
            product, selections
        )

        if variation:
            return {
                'type': 'variation',
                'id': variation.id,
                'name': variation.name,
                'slug': variation.slug,
                'product_slug': product.slug,
                'price': str(variation.price),
                'available_values': available_values,
            }

        return {
            'type': 'none',
            'message': 'Nenhuma variação encontrada para a seleção',
            'available_values': available_values,
        }

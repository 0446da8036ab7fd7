"""
Public catalog reads.

Listings load related rows (categories, variations, images) with one
`IN` query per relation instead of one query per product.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Any

from django.db.models import Q

from apps.catalog.models import (
    Category,
    Product,
    ProductImage,
    ProductVariation,
)
from apps.core.exceptions import NotFoundError
from apps.core.money import format_brl


def image_payload(image: Optional[ProductImage]) -> Optional[Dict[str, Any]]:
    if image is None:
        return None
    return {
        'id': image.id,
        'url': image.url,
        'public_id': image.public_id,
        'alt': image.alt,
        'is_main': image.is_main,
    }


def _first_image_by(images, key) -> Dict[int, ProductImage]:
    """Images arrive ordered main-first; keep the first one per owner."""
    result = {}
    for image in images:
        result.setdefault(getattr(image, key), image)
    return result


def main_images(product_ids) -> Dict[int, ProductImage]:
    """
    First image per product. Products without images of their own fall
    back to the first image of one of their variations.
    """
    product_images = _first_image_by(
        ProductImage.objects.filter(product_id__in=product_ids),
        'product_id'
    )
    missing = [pid for pid in product_ids if pid not in product_images]
    if missing:
        for image in ProductImage.objects.filter(
            variation__product_id__in=missing
        ).select_related('variation'):
            product_images.setdefault(image.variation.product_id, image)
    return product_images


class CatalogService:

    @staticmethod
    def list_products(
        limit: int = 10,
        offset: int = 0,
        featured: bool = False,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        queryset = Product.objects.filter(is_active=True)
        if featured:
            queryset = queryset.filter(is_featured=True)
        if category:
            queryset = queryset.filter(
                Q(category__slug=category) | Q(category__parent__slug=category)
            )
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(short_description__icontains=search)
            )

        total = queryset.count()
        products = list(queryset.order_by('-created_at', '-id')[offset:offset + limit])
        product_ids = [p.id for p in products]

        category_ids = {p.category_id for p in products if p.category_id}
        categories_map = {
            c.id: c for c in Category.objects.filter(id__in=category_ids)
        } if category_ids else {}

        variations_by_product = defaultdict(list)
        for variation in ProductVariation.objects.filter(
            product_id__in=product_ids, is_active=True
        ):
            variations_by_product[variation.product_id].append(variation)

        images = main_images(product_ids)

        items = []
        for product in products:
            variations = variations_by_product.get(product.id, [])
            price = min((v.price for v in variations), default=product.price)
            category_obj = categories_map.get(product.category_id)
            items.append({
                'id': product.id,
                'name': product.name,
                'slug': product.slug,
                'short_description': product.short_description,
                'price': str(price),
                'price_display': format_brl(price),
                'has_variations': bool(variations),
                'variation_count': len(variations),
                'is_featured': product.is_featured,
                'category': {
                    'id': category_obj.id,
                    'name': category_obj.name,
                    'slug': category_obj.slug,
                } if category_obj else None,
                'image': image_payload(images.get(product.id)),
            })

        return {
            'products': items,
            'pagination': {
                'total': total,
                'limit': limit,
                'offset': offset,
                'has_more': offset + len(items) < total,
            },
        }

    @staticmethod
    def get_product_by_slug(slug: str) -> Dict[str, Any]:
        product = (
            Product.objects.select_related('category')
            .filter(slug=slug, is_active=True)
            .first()
        )
        if product is None:
            raise NotFoundError('Produto não encontrado', entity_type='product', entity_id=slug)

        variations = list(
            product.variations.filter(is_active=True).prefetch_related(
                'variation_values__attribute',
                'variation_values__value',
                'images',
                'files',
            )
        )

        # Attributes in use, with the values any active variation holds
        attributes = {}
        for variation in variations:
            for vav in variation.variation_values.all():
                entry = attributes.setdefault(vav.attribute.slug, {
                    'id': vav.attribute.id,
                    'name': vav.attribute.name,
                    'slug': vav.attribute.slug,
                    'sort_order': vav.attribute.sort_order,
                    'values': {},
                })
                entry['values'].setdefault(vav.value.slug, {
                    'id': vav.value.id,
                    'value': vav.value.value,
                    'slug': vav.value.slug,
                    'sort_order': vav.value.sort_order,
                })

        attributes_list = []
        for entry in sorted(attributes.values(), key=lambda a: (a['sort_order'], a['name'])):
            values = sorted(entry.pop('values').values(), key=lambda v: (v['sort_order'], v['value']))
            entry['values'] = values
            attributes_list.append(entry)

        category = product.category
        return {
            'id': product.id,
            'name': product.name,
            'slug': product.slug,
            'description': product.description,
            'short_description': product.short_description,
            'price': str(product.price),
            'price_display': format_brl(product.price),
            'is_featured': product.is_featured,
            'seo_title': product.seo_title,
            'seo_description': product.seo_description,
            'category': {
                'id': category.id,
                'name': category.name,
                'slug': category.slug,
            } if category else None,
            'images': [image_payload(img) for img in product.images.all()],
            'attributes': attributes_list,
            'variations': [
                {
                    'id': variation.id,
                    'name': variation.name,
                    'slug': variation.slug,
                    'price': str(variation.price),
                    'price_display': format_brl(variation.price),
                    'attribute_values': {
                        vav.attribute.slug: vav.value.slug
                        for vav in variation.variation_values.all()
                    },
                    'images': [image_payload(img) for img in variation.images.all()],
                    'files': [
                        {'id': f.id, 'name': f.name, 'size': f.size}
                        for f in variation.files.all()
                    ],
                }
                for variation in variations
            ],
        }

    @staticmethod
    def list_categories() -> List[Dict[str, Any]]:
        """Active categories as a tree, built from a single query."""
        categories = list(Category.objects.filter(is_active=True).order_by('sort_order', 'name'))
        nodes = {
            c.id: {'id': c.id, 'name': c.name, 'slug': c.slug, 'children': []}
            for c in categories
        }
        roots = []
        for category in categories:
            node = nodes[category.id]
            if category.parent_id and category.parent_id in nodes:
                nodes[category.parent_id]['children'].append(node)
            elif not category.parent_id:
                roots.append(node)
        return roots

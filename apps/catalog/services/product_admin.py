"""
Back-office writes for products, variations, attributes and categories.

Nested collections (images, files, attribute mappings) are synchronized by
deleting the current rows and re-inserting the payload, inside a single
transaction. Collections absent from the payload are left untouched.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Any

from django.db import transaction
from django.db.models import Count, Q

from apps.catalog.models import (
    Attribute,
    AttributeValue,
    Category,
    DigitalFile,
    Product,
    ProductAttribute,
    ProductImage,
    ProductVariation,
    VariationAttributeValue,
)
from apps.core.exceptions import NotFoundError, ValidationError
from apps.core.text import slugify_pt, unique_slugify

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = (
    'name', 'slug', 'description', 'short_description', 'price', 'category_id',
    'is_active', 'is_featured', 'seo_title', 'seo_description',
)
VARIATION_FIELDS = ('name', 'slug', 'price', 'is_active', 'sort_order')
IMAGE_FIELDS = ('public_id', 'url', 'alt', 'width', 'height', 'format', 'bytes')
FILE_FIELDS = ('name', 'original_name', 'mime_type', 'size', 'path', 'hash')


class ProductAdminService:

    # =========================================================================
    # Products
    # =========================================================================

    @staticmethod
    def list_products(
        queryset=None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        queryset = Product.objects.all() if queryset is None else queryset
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(slug__icontains=search) | Q(description__icontains=search)
            )
        queryset = queryset.select_related('category').annotate(
            variations_total=Count('variations', distinct=True)
        ).order_by('-created_at', '-id')

        page = max(1, page)
        total = queryset.count()
        offset = (page - 1) * limit
        products = list(queryset[offset:offset + limit])
        product_ids = [p.id for p in products]

        files_by_product = defaultdict(list)
        for f in DigitalFile.objects.filter(
            Q(product_id__in=product_ids) | Q(variation__product_id__in=product_ids)
        ).select_related('variation'):
            owner_id = f.product_id or f.variation.product_id
            files_by_product[owner_id].append({
                'id': f.id,
                'name': f.name,
                'original_name': f.original_name,
                'path': f.path,
                'size': f.size,
                'variation_id': f.variation_id,
            })

        items = []
        for product in products:
            items.append({
                'id': product.id,
                'name': product.name,
                'slug': product.slug,
                'price': str(product.price),
                'is_active': product.is_active,
                'is_featured': product.is_featured,
                'category': product.category.name if product.category else None,
                'variation_count': product.variations_total,
                'files': files_by_product.get(product.id, []),
                'created_at': product.created_at.isoformat() if product.created_at else None,
            })

        return {
            'products': items,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': (total + limit - 1) // limit if limit else 0,
            },
        }

    @staticmethod
    def product_stats() -> Dict[str, int]:
        stats = Product.objects.aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(is_active=True)),
            inactive=Count('id', filter=Q(is_active=False)),
            featured=Count('id', filter=Q(is_featured=True)),
        )
        stats['without_variations'] = Product.objects.filter(variations__isnull=True).count()
        return stats

    @staticmethod
    @transaction.atomic
    def create_product(data: Dict[str, Any]) -> Product:
        fields = {k: data[k] for k in PRODUCT_FIELDS if k in data}
        ProductAdminService._check_category(fields.get('category_id'))
        fields['slug'] = ProductAdminService._product_slug(fields.get('slug'), fields['name'])

        product = Product.objects.create(**fields)

        if data.get('images'):
            ProductAdminService._replace_images(data['images'], product=product)
        if data.get('files'):
            ProductAdminService._replace_files(data['files'], product=product)
        if data.get('attribute_ids'):
            ProductAdminService._replace_product_attributes(product, data['attribute_ids'])
        for index, variation_data in enumerate(data.get('variations') or []):
            ProductAdminService._save_variation(product, None, variation_data, index)

        logger.info(f"Produto criado: {product.pk} ({product.slug})")
        return product

    @staticmethod
    @transaction.atomic
    def update_product(product: Product, data: Dict[str, Any]) -> Product:
        fields = {k: data[k] for k in PRODUCT_FIELDS if k in data}
        if 'category_id' in fields:
            ProductAdminService._check_category(fields['category_id'])
        if 'slug' in fields:
            fields['slug'] = ProductAdminService._product_slug(
                fields['slug'], fields.get('name', product.name), exclude_pk=product.pk
            )

        for field, value in fields.items():
            setattr(product, field, value)
        if fields:
            product.save()

        if 'images' in data:
            ProductAdminService._replace_images(data['images'], product=product)
        if 'files' in data:
            ProductAdminService._replace_files(data['files'], product=product)
        if 'attribute_ids' in data:
            ProductAdminService._replace_product_attributes(product, data['attribute_ids'])
        if 'variations' in data:
            ProductAdminService._sync_variations(product, data['variations'])

        logger.info(f"Produto atualizado: {product.pk} ({product.slug})")
        return product

    @staticmethod
    @transaction.atomic
    def delete_product(product: Product) -> Dict[str, List[str]]:
        """
        Delete the product with its variations, images and files.
        Returns the external references (R2 keys, Cloudinary ids) so the
        caller can clean external storage after the commit.
        """
        owned = Q(product=product) | Q(variation__product=product)
        file_keys = list(DigitalFile.objects.filter(owned).values_list('path', flat=True))
        public_ids = [
            pid for pid in ProductImage.objects.filter(owned).values_list('public_id', flat=True) if pid
        ]
        product_id = product.pk
        product.delete()
        logger.info(
            f"Produto {product_id} deletado ({len(file_keys)} arquivos, {len(public_ids)} imagens)"
        )
        return {'file_keys': file_keys, 'image_public_ids': public_ids}

    # =========================================================================
    # Variations
    # =========================================================================

    @staticmethod
    def get_variation(product_id, variation_id) -> ProductVariation:
        variation = ProductVariation.objects.filter(pk=variation_id, product_id=product_id).first()
        if variation is None:
            raise NotFoundError(
                'Variação não encontrada para este produto',
                entity_type='variation',
                entity_id=variation_id
            )
        return variation

    @staticmethod
    @transaction.atomic
    def add_variation(product: Product, data: Dict[str, Any]) -> ProductVariation:
        data = {k: v for k, v in data.items() if k != 'id'}
        variation = ProductAdminService._save_variation(
            product, None, data, product.variations.count()
        )
        logger.info(f"Variação criada: {variation.pk} no produto {product.pk}")
        return variation

    @staticmethod
    @transaction.atomic
    def update_variation(variation: ProductVariation, data: Dict[str, Any]) -> ProductVariation:
        return ProductAdminService._save_variation(variation.product, variation, data)

    @staticmethod
    def delete_variation(variation: ProductVariation) -> Dict[str, List[str]]:
        file_keys = list(variation.files.values_list('path', flat=True))
        public_ids = [pid for pid in variation.images.values_list('public_id', flat=True) if pid]
        variation_id = variation.pk
        variation.delete()
        logger.info(f"Variação {variation_id} deletada")
        return {'file_keys': file_keys, 'image_public_ids': public_ids}

    # =========================================================================
    # Attributes & Categories
    # =========================================================================

    @staticmethod
    def list_attributes() -> List[Dict[str, Any]]:
        attributes = list(Attribute.objects.order_by('sort_order', 'name'))
        values_by_attribute = defaultdict(list)
        for value in AttributeValue.objects.filter(
            attribute_id__in=[a.id for a in attributes]
        ).order_by('sort_order', 'value'):
            values_by_attribute[value.attribute_id].append({
                'id': value.id,
                'value': value.value,
                'slug': value.slug,
                'sort_order': value.sort_order,
                'is_default': value.is_default,
            })

        return [
            {
                'id': attribute.id,
                'name': attribute.name,
                'slug': attribute.slug,
                'sort_order': attribute.sort_order,
                'is_active': attribute.is_active,
                'values': values_by_attribute.get(attribute.id, []),
            }
            for attribute in attributes
        ]

    @staticmethod
    @transaction.atomic
    def create_attribute(data: Dict[str, Any]) -> Attribute:
        slug = data.get('slug') or slugify_pt(data['name'])
        if Attribute.objects.filter(slug=slug).exists():
            raise ValidationError(f'Já existe um atributo com o slug "{slug}"', field='slug')

        attribute = Attribute.objects.create(
            name=data['name'],
            slug=slug,
            sort_order=data.get('sort_order', 0),
            is_active=data.get('is_active', True),
        )

        seen = set()
        values = []
        for index, value_data in enumerate(data.get('values') or []):
            value_slug = value_data.get('slug') or slugify_pt(value_data['value']) or f'valor-{index}'
            if value_slug in seen:
                raise ValidationError(f'Valor duplicado: {value_data["value"]}', field='values')
            seen.add(value_slug)
            values.append(AttributeValue(
                attribute=attribute,
                value=value_data['value'],
                slug=value_slug,
                sort_order=value_data.get('sort_order', index),
                is_default=value_data.get('is_default', False),
            ))
        AttributeValue.objects.bulk_create(values)

        logger.info(f"Atributo criado: {attribute.slug} com {len(values)} valores")
        return attribute

    @staticmethod
    def create_category(data: Dict[str, Any]) -> Category:
        parent_id = data.get('parent_id')
        if parent_id and not Category.objects.filter(pk=parent_id).exists():
            raise ValidationError('Categoria pai não encontrada', field='parent_id')

        slug = data.get('slug')
        if slug and Category.objects.filter(slug=slug).exists():
            raise ValidationError(f'Já existe uma categoria com o slug "{slug}"', field='slug')

        category = Category(
            name=data['name'],
            slug=slug or '',
            parent_id=parent_id,
            description=data.get('description', ''),
            sort_order=data.get('sort_order', 0),
            is_active=data.get('is_active', True),
        )
        category.save()
        return category

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _check_category(category_id):
        if category_id and not Category.objects.filter(pk=category_id).exists():
            raise ValidationError('Categoria não encontrada', field='category_id')

    @staticmethod
    def _product_slug(slug: Optional[str], name: str, exclude_pk=None) -> str:
        if not slug:
            return unique_slugify(Product, name, exclude_pk=exclude_pk)
        taken = Product.objects.filter(slug=slug)
        if exclude_pk is not None:
            taken = taken.exclude(pk=exclude_pk)
        if taken.exists():
            raise ValidationError(f'Já existe um produto com o slug "{slug}"', field='slug')
        return slug

    @staticmethod
    def _sync_variations(product: Product, variations_data: List[Dict[str, Any]]):
        existing = {v.id: v for v in product.variations.all()}
        kept = set()

        for index, variation_data in enumerate(variations_data):
            variation_id = variation_data.get('id')
            variation = None
            if variation_id:
                variation = existing.get(variation_id)
                if variation is None:
                    raise NotFoundError(
                        f'Variação {variation_id} não pertence ao produto',
                        entity_type='variation',
                        entity_id=variation_id
                    )
                kept.add(variation_id)
            ProductAdminService._save_variation(product, variation, variation_data, index)

        removed = [vid for vid in existing if vid not in kept]
        if removed:
            ProductVariation.objects.filter(id__in=removed).delete()
            logger.info(f"Produto {product.pk}: variações removidas {removed}")

    @staticmethod
    def _save_variation(
        product: Product,
        variation: Optional[ProductVariation],
        data: Dict[str, Any],
        index: int = 0,
    ) -> ProductVariation:
        fields = {k: data[k] for k in VARIATION_FIELDS if k in data}
        if variation is None:
            fields.setdefault('sort_order', index)
            variation = ProductVariation.objects.create(product=product, **fields)
        elif fields:
            for field, value in fields.items():
                setattr(variation, field, value)
            variation.save()

        if 'images' in data:
            ProductAdminService._replace_images(data['images'], variation=variation)
        if 'files' in data:
            ProductAdminService._replace_files(data['files'], variation=variation)
        if 'attribute_values' in data:
            ProductAdminService._replace_variation_values(variation, data['attribute_values'])
        return variation

    @staticmethod
    def _replace_images(images_data, product=None, variation=None):
        owner = {'variation': variation} if variation is not None else {'product': product}
        ProductImage.objects.filter(**owner).delete()
        if not images_data:
            return []

        main_index = next(
            (i for i, img in enumerate(images_data) if img.get('is_main')), 0
        )
        default_alt = str(variation if variation is not None else product)[:255]
        images = [
            ProductImage(
                **owner,
                **{k: img[k] for k in IMAGE_FIELDS if img.get(k) is not None},
                sort_order=img.get('sort_order', index),
                is_main=index == main_index,
            )
            for index, img in enumerate(images_data)
        ]
        for image in images:
            if not image.alt:
                image.alt = default_alt
        return ProductImage.objects.bulk_create(images)

    @staticmethod
    def _replace_files(files_data, product=None, variation=None):
        owner = {'variation': variation} if variation is not None else {'product': product}
        DigitalFile.objects.filter(**owner).delete()
        files = []
        for file_data in files_data or []:
            fields = {k: file_data[k] for k in FILE_FIELDS if file_data.get(k) is not None}
            fields.setdefault('name', fields.get('original_name', ''))
            fields.setdefault('original_name', fields['name'])
            files.append(DigitalFile(**owner, **fields))
        return DigitalFile.objects.bulk_create(files)

    @staticmethod
    def _replace_product_attributes(product: Product, attribute_ids: List[int]):
        attribute_ids = list(dict.fromkeys(attribute_ids))
        found = set(Attribute.objects.filter(id__in=attribute_ids).values_list('id', flat=True))
        missing = [aid for aid in attribute_ids if aid not in found]
        if missing:
            raise ValidationError(f'Atributos não encontrados: {missing}', field='attribute_ids')

        ProductAttribute.objects.filter(product=product).delete()
        ProductAttribute.objects.bulk_create([
            ProductAttribute(product=product, attribute_id=aid) for aid in attribute_ids
        ])

    @staticmethod
    def _replace_variation_values(variation: ProductVariation, values_data):
        value_ids = [v['value_id'] for v in values_data]
        values_map = AttributeValue.objects.in_bulk(value_ids)

        rows = []
        used_attributes = set()
        for item in values_data:
            value = values_map.get(item['value_id'])
            if value is None:
                raise ValidationError(
                    f'Valor de atributo {item["value_id"]} não encontrado',
                    field='attribute_values'
                )
            attribute_id = item.get('attribute_id') or value.attribute_id
            if attribute_id != value.attribute_id:
                raise ValidationError(
                    f'O valor "{value.value}" não pertence ao atributo {attribute_id}',
                    field='attribute_values'
                )
            if attribute_id in used_attributes:
                raise ValidationError(
                    'Uma variação só pode ter um valor por atributo',
                    field='attribute_values'
                )
            used_attributes.add(attribute_id)
            rows.append(VariationAttributeValue(
                variation=variation, attribute_id=attribute_id, value=value
            ))

        VariationAttributeValue.objects.filter(variation=variation).delete()
        VariationAttributeValue.objects.bulk_create(rows)

        # Keep the product's attribute list covering what its variations use
        linked = set(
            ProductAttribute.objects.filter(product_id=variation.product_id)
            .values_list('attribute_id', flat=True)
        )
        ProductAttribute.objects.bulk_create([
            ProductAttribute(product_id=variation.product_id, attribute_id=aid)
            for aid in used_attributes if aid not in linked
        ])

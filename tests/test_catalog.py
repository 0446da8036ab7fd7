"""
Testes do catálogo: vitrine pública, escolha de variação e back office.
"""

from decimal import Decimal
from unittest.mock import patch

import pytest

from apps.catalog.models import (
    Attribute,
    AttributeValue,
    DigitalFile,
    ProductAttribute,
    ProductImage,
    ProductVariation,
    VariationAttributeValue,
)
from apps.catalog.services import CatalogService, ProductAdminService, VariationNavigationService
from apps.core.exceptions import NotFoundError, ValidationError

pytestmark = pytest.mark.django_db


@pytest.fixture
def formats(db):
    """Atributo Formato com os valores A4 e A5."""
    attribute = Attribute.objects.create(name='Formato', slug='formato')
    a4 = AttributeValue.objects.create(attribute=attribute, value='A4', slug='a4', sort_order=0)
    a5 = AttributeValue.objects.create(attribute=attribute, value='A5', slug='a5', sort_order=1)
    return attribute, a4, a5


def attach(variation, value):
    VariationAttributeValue.objects.create(
        variation=variation, attribute=value.attribute, value=value
    )


# =============================================================================
# Vitrine
# =============================================================================

class TestCatalogListing:

    def test_only_active_products_are_listed(self, product_factory):
        product_factory(name='Visível')
        product_factory(name='Oculto', is_active=False)

        result = CatalogService.list_products()

        assert [p['name'] for p in result['products']] == ['Visível']
        assert result['pagination']['total'] == 1

    def test_price_is_cheapest_active_variation(self, product, variation_factory):
        variation_factory(product, name='A4', price=Decimal('24.90'))
        variation_factory(product, name='A5', price=Decimal('14.90'))
        variation_factory(product, name='Inativa', price=Decimal('1.00'), is_active=False)

        item = CatalogService.list_products()['products'][0]

        assert item['price'] == '14.90'
        assert item['price_display'] == 'R$ 14,90'
        assert item['variation_count'] == 2

    def test_image_falls_back_to_variation_image(self, product, variation):
        ProductImage.objects.create(variation=variation, url='https://img.example.com/a5.png')

        item = CatalogService.list_products()['products'][0]

        assert item['image']['url'] == 'https://img.example.com/a5.png'

    def test_listing_uses_constant_queries(
        self, product_factory, variation_factory, category_factory, django_assert_max_num_queries
    ):
        category = category_factory()
        for _ in range(8):
            product = product_factory(category=category)
            variation_factory(product)
            ProductImage.objects.create(product=product, url='https://img.example.com/p.png')

        with django_assert_max_num_queries(6):
            result = CatalogService.list_products(limit=20)

        assert len(result['products']) == 8

    def test_pagination_and_filters(self, product_factory, category_factory):
        planners = category_factory(name='Planners', slug='planners')
        for index in range(3):
            product_factory(name=f'Planner {index}', category=planners, is_featured=index == 0)
        product_factory(name='Caderno')

        page = CatalogService.list_products(limit=2, offset=0, category='planners')
        featured = CatalogService.list_products(featured=True)
        search = CatalogService.list_products(search='cader')

        assert page['pagination'] == {'total': 3, 'limit': 2, 'offset': 0, 'has_more': True}
        assert [p['name'] for p in featured['products']] == ['Planner 0']
        assert [p['name'] for p in search['products']] == ['Caderno']

    def test_list_endpoint(self, api_client, product):
        response = api_client.get('/api/products/', {'limit': 'abc'})

        assert response.status_code == 200
        assert response.data['pagination']['limit'] == 10
        assert response.data['products'][0]['slug'] == product.slug


class TestProductDetail:

    def test_detail_includes_variations_and_attributes(self, api_client, product, variation_factory, formats):
        _, a4, a5 = formats
        attach(variation_factory(product, name='A4', price=Decimal('24.90')), a4)
        attach(variation_factory(product, name='A5', price=Decimal('19.90')), a5)

        response = api_client.get(f'/api/products/{product.slug}/')

        assert response.status_code == 200
        assert [v['attribute_values'] for v in response.data['variations']] == [
            {'formato': 'a4'}, {'formato': 'a5'}
        ]
        assert [v['slug'] for v in response.data['attributes'][0]['values']] == ['a4', 'a5']

    def test_inactive_product_is_404(self, api_client, product_factory):
        hidden = product_factory(name='Oculto', is_active=False)

        response = api_client.get(f'/api/products/{hidden.slug}/')

        assert response.status_code == 404

    def test_get_by_slug_raises(self):
        with pytest.raises(NotFoundError):
            CatalogService.get_product_by_slug('nao-existe')

    def test_seo_fields_default_from_name_and_description(self, product_factory):
        product = product_factory(
            name='Planner Semanal', short_description='Resumo', description='Descrição completa',
        )

        assert product.seo_title == 'Planner Semanal'
        assert product.seo_description == 'Descrição completa'


class TestVariationMatch:

    def test_match_returns_variation(self, api_client, product, variation_factory, formats):
        _, a4, a5 = formats
        attach(variation_factory(product, name='A4'), a4)
        target = variation_factory(product, name='A5')
        attach(target, a5)

        response = api_client.get(f'/api/products/{product.slug}/match/', {'formato': 'a5'})

        assert response.data['type'] == 'variation'
        assert response.data['id'] == target.id
        selected = [v for v in response.data['available_values']['formato']['values'] if v['is_selected']]
        assert [v['slug'] for v in selected] == ['a5']

    def test_no_match(self, product, variation_factory, formats):
        _, a4, _ = formats
        attach(variation_factory(product, name='A4'), a4)

        result = VariationNavigationService.find_match(product, {'formato': 'a5'})

        assert result['type'] == 'none'


# =============================================================================
# Back office
# =============================================================================

class TestAdminProducts:

    def test_requires_admin(self, customer_client):
        response = customer_client.get('/api/admin/products/')

        assert response.status_code == 403

    def test_create_product_with_nested_collections(self, admin_client, formats):
        _, a4, _ = formats
        payload = {
            'name': 'Planner Anual',
            'price': '49.90',
            'images': [{'url': 'https://img.example.com/capa.png', 'public_id': 'products/capa'}],
            'variations': [
                {
                    'name': 'A4',
                    'price': '39.90',
                    'attribute_values': [{'value_id': a4.id}],
                    'files': [{'original_name': 'anual-a4.pdf', 'path': 'pdfs/anual-a4.pdf', 'size': 2048}],
                },
            ],
        }

        response = admin_client.post('/api/admin/products/', payload, format='json')

        assert response.status_code == 201
        assert response.data['slug'] == 'planner-anual'
        assert response.data['images'][0]['is_main'] is True
        variation = response.data['variations'][0]
        assert variation['files'][0]['name'] == 'anual-a4.pdf'
        assert variation['attribute_values'][0]['value_slug'] == 'a4'
        assert response.data['attribute_ids'] == [a4.attribute_id]

    def test_create_rejects_duplicate_slug(self, admin_client, product):
        response = admin_client.post('/api/admin/products/', {
            'name': 'Outro', 'slug': product.slug, 'price': '10.00',
        }, format='json')

        assert response.status_code == 400
        assert response.data['field'] == 'slug'

    def test_update_syncs_variations(self, product, variation_factory):
        kept = variation_factory(product, name='A4')
        removed = variation_factory(product, name='A5')

        ProductAdminService.update_product(product, {
            'name': 'Planner Mensal 2',
            'variations': [
                {'id': kept.id, 'name': 'A4 Atualizado', 'price': Decimal('21.00')},
                {'name': 'Carta', 'price': Decimal('22.00')},
            ],
        })

        names = list(product.variations.order_by('sort_order').values_list('name', flat=True))
        assert names == ['A4 Atualizado', 'Carta']
        assert not ProductVariation.objects.filter(pk=removed.pk).exists()

    def test_update_rejects_foreign_variation(self, product, product_factory, variation_factory):
        foreign = variation_factory(product_factory(name='Outro'))

        with pytest.raises(NotFoundError):
            ProductAdminService.update_product(product, {
                'variations': [{'id': foreign.id, 'name': 'X', 'price': Decimal('1.00')}],
            })

    def test_one_value_per_attribute(self, variation, formats):
        _, a4, a5 = formats

        with pytest.raises(ValidationError):
            ProductAdminService.update_variation(variation, {
                'attribute_values': [{'value_id': a4.id}, {'value_id': a5.id}],
            })

    def test_delete_cleans_external_storage(self, admin_client, product, variation, file_factory):
        file_factory(variation=variation, path='pdfs/a5.pdf')
        file_factory(product=product, path='pdfs/base.pdf')
        ProductImage.objects.create(product=product, url='https://img.example.com/x.png', public_id='products/x')

        with patch('apps.catalog.api.views.get_storage') as get_storage, \
                patch('apps.catalog.api.views.media.delete_images') as delete_images:
            delete_images.return_value = {'deleted': ['products/x'], 'failed': []}
            response = admin_client.delete(f'/api/admin/products/{product.pk}/')

        assert response.status_code == 200
        assert response.data['cleanup']['files_deleted'] == 2
        deleted_keys = sorted(call.args[0] for call in get_storage.return_value.delete.call_args_list)
        assert deleted_keys == ['pdfs/a5.pdf', 'pdfs/base.pdf']
        delete_images.assert_called_once_with(['products/x'])
        assert not DigitalFile.objects.exists()

    def test_variation_detail_must_belong_to_product(self, admin_client, product, product_factory, variation_factory):
        other = variation_factory(product_factory(name='Outro'))

        response = admin_client.get(f'/api/admin/products/{product.pk}/variations/{other.pk}/')

        assert response.status_code == 404

    def test_add_variation(self, admin_client, product):
        response = admin_client.post(
            f'/api/admin/products/{product.pk}/variations/',
            {'name': 'Digital', 'price': '9.90'},
            format='json'
        )

        assert response.status_code == 201
        assert response.data['slug'] == 'digital'

    def test_admin_list_pagination(self, admin_client, product_factory):
        for _ in range(3):
            product_factory()

        response = admin_client.get('/api/admin/products/', {'limit': 2, 'page': 2})

        assert response.data['pagination'] == {'page': 2, 'limit': 2, 'total': 3, 'total_pages': 2}
        assert len(response.data['products']) == 1


class TestAdminAttributes:

    def test_create_attribute_with_values(self, admin_client):
        response = admin_client.post('/api/admin/attributes/', {
            'name': 'Idioma',
            'values': [{'value': 'Português'}, {'value': 'Español'}],
        }, format='json')

        assert response.status_code == 201
        assert [v['slug'] for v in response.data['values']] == ['portugues', 'espanol']

    def test_duplicate_values_rejected(self):
        with pytest.raises(ValidationError):
            ProductAdminService.create_attribute({
                'name': 'Cor', 'values': [{'value': 'Azul'}, {'value': 'azul'}],
            })

    def test_product_attribute_link_follows_variations(self, variation, formats):
        _, a4, _ = formats

        ProductAdminService.update_variation(variation, {'attribute_values': [{'value_id': a4.id}]})

        assert ProductAttribute.objects.filter(product=variation.product, attribute=a4.attribute).exists()

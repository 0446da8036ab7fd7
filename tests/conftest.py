"""
Fixtures compartilhadas dos testes da loja.

Fábricas de usuários, catálogo e pedidos, clientes da API já autenticados
e limpeza do cache e dos gateways entre os testes.
"""

from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.downloads.storage import reset_storage
from apps.payments.gateways import reset_gateways


@pytest.fixture(autouse=True)
def clean_state():
    """Cada teste começa com cache vazio e gateways/armazenamento recriados."""
    cache.clear()
    reset_gateways()
    reset_storage()
    yield
    cache.clear()
    reset_gateways()
    reset_storage()


# =============================================================================
# Usuários e clientes da API
# =============================================================================

@pytest.fixture
def user_factory(db):
    from apps.accounts.models import User

    counter = {'n': 0}

    def create_user(**kwargs):
        counter['n'] += 1
        password = kwargs.pop('password', 'senha-forte-123')
        defaults = {
            'email': f'cliente{counter["n"]}@example.com',
            'name': f'Cliente {counter["n"]}',
            'role': User.ROLE_CUSTOMER,
        }
        defaults.update(kwargs)
        user = User(**defaults)
        user.set_password(password)
        user.save()
        return user

    return create_user


@pytest.fixture
def customer(user_factory):
    return user_factory(email='maria@example.com', name='Maria')


@pytest.fixture
def admin_user(user_factory):
    from apps.accounts.models import User
    return user_factory(email='rafa@example.com', name='Rafa', role=User.ROLE_ADMIN)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def customer_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# =============================================================================
# Catálogo
# =============================================================================

@pytest.fixture
def category_factory(db):
    from apps.catalog.models import Category

    def create_category(**kwargs):
        defaults = {'name': 'Planners'}
        defaults.update(kwargs)
        return Category.objects.create(**defaults)

    return create_category


@pytest.fixture
def product_factory(db):
    from apps.catalog.models import Product

    counter = {'n': 0}

    def create_product(**kwargs):
        counter['n'] += 1
        defaults = {
            'name': f'Planner {counter["n"]}',
            'price': Decimal('29.90'),
            'is_active': True,
        }
        defaults.update(kwargs)
        return Product.objects.create(**defaults)

    return create_product


@pytest.fixture
def variation_factory(db):
    from apps.catalog.models import ProductVariation

    def create_variation(product, **kwargs):
        defaults = {
            'name': 'A4',
            'price': Decimal('19.90'),
            'is_active': True,
        }
        defaults.update(kwargs)
        return ProductVariation.objects.create(product=product, **defaults)

    return create_variation


@pytest.fixture
def file_factory(db):
    from apps.catalog.models import DigitalFile

    def create_file(product=None, variation=None, **kwargs):
        defaults = {
            'name': 'planner.pdf',
            'original_name': 'planner.pdf',
            'path': 'pdfs/planner.pdf',
            'size': 1024,
        }
        defaults.update(kwargs)
        return DigitalFile.objects.create(product=product, variation=variation, **defaults)

    return create_file


@pytest.fixture
def product(product_factory):
    return product_factory(name='Planner Mensal', price=Decimal('29.90'))


@pytest.fixture
def variation(product, variation_factory):
    return variation_factory(product, name='A5', price=Decimal('19.90'))


# =============================================================================
# Cupons e pedidos
# =============================================================================

@pytest.fixture
def coupon_factory(db):
    from apps.coupons.models import Coupon

    def create_coupon(**kwargs):
        products = kwargs.pop('products', None)
        variations = kwargs.pop('variations', None)
        defaults = {
            'code': 'PROMO10',
            'type': Coupon.TYPE_PERCENT,
            'value': Decimal('10'),
        }
        defaults.update(kwargs)
        coupon = Coupon.objects.create(**defaults)
        if products:
            coupon.products.set(products)
        if variations:
            coupon.variations.set(variations)
        return coupon

    return create_coupon


@pytest.fixture
def order_factory(db):
    from apps.orders.models import Order, OrderItem, OrderStatus, PaymentProvider

    def create_order(user=None, items=(), **kwargs):
        defaults = {
            'user': user,
            'email': user.email if user else 'visitante@example.com',
            'status': OrderStatus.PENDING,
            'subtotal': Decimal('29.90'),
            'total': Decimal('29.90'),
            'payment_provider': PaymentProvider.PIX,
        }
        defaults.update(kwargs)
        order = Order.objects.create(**defaults)
        for product, variation, quantity in items:
            price = variation.price if variation else product.price
            OrderItem.objects.create(
                order=order,
                product=product,
                variation=variation,
                name=f'{product.name} - {variation.name}' if variation else product.name,
                price=price,
                quantity=quantity,
                total=price * quantity,
            )
        return order

    return create_order

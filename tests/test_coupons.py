"""
Testes de cupons: ordem das validações, cálculo do desconto, uso e admin.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.core.exceptions import BusinessRuleError, NotFoundError, ValidationError
from apps.coupons.models import Coupon, CouponRedemption
from apps.coupons.services import CouponService
from apps.orders.pricing import price_items, subtotal_of

pytestmark = pytest.mark.django_db


def priced(product, variation=None, quantity=1):
    lines = price_items([{
        'product_id': product.id,
        'variation_id': variation.id if variation else None,
        'quantity': quantity,
    }])
    return lines, subtotal_of(lines)


def rule_of(exc_info):
    return exc_info.value.rule


# =============================================================================
# Validação
# =============================================================================

class TestCouponValidation:

    def test_percent_discount(self, product, coupon_factory):
        coupon_factory(code='PROMO10', value=Decimal('10'))
        lines, subtotal = priced(product, quantity=2)

        result = CouponService.validate('promo10', lines, subtotal)

        assert result.discount == Decimal('5.98')
        assert result.new_total == Decimal('53.82')
        assert result.to_dict()['new_total_display'] == 'R$ 53,82'

    def test_fixed_discount_capped_at_applicable_total(self, product, coupon_factory):
        coupon_factory(code='FIXO50', type=Coupon.TYPE_FIXED, value=Decimal('50'))
        lines, subtotal = priced(product)

        result = CouponService.validate('FIXO50', lines, subtotal)

        assert result.discount == Decimal('29.90')
        assert result.new_total == Decimal('0.00')

    def test_unknown_code(self, product):
        lines, subtotal = priced(product)

        with pytest.raises(NotFoundError):
            CouponService.validate('NADA', lines, subtotal)

    def test_inactive_checked_before_dates(self, product, coupon_factory):
        coupon_factory(is_active=False, ends_at=timezone.now() - timedelta(days=1))
        lines, subtotal = priced(product)

        with pytest.raises(BusinessRuleError) as exc_info:
            CouponService.validate('PROMO10', lines, subtotal)
        assert rule_of(exc_info) == 'coupon_inactive'

    @pytest.mark.parametrize('kwargs, rule', [
        ({'starts_at': timezone.now() + timedelta(days=1)}, 'coupon_not_started'),
        ({'ends_at': timezone.now() - timedelta(days=1)}, 'coupon_expired'),
        ({'max_uses': 3, 'used_count': 3}, 'coupon_exhausted'),
        ({'min_subtotal': Decimal('100.00')}, 'coupon_min_subtotal'),
    ])
    def test_rules(self, product, coupon_factory, kwargs, rule):
        coupon_factory(**kwargs)
        lines, subtotal = priced(product)

        with pytest.raises(BusinessRuleError) as exc_info:
            CouponService.validate('PROMO10', lines, subtotal)
        assert rule_of(exc_info) == rule

    def test_per_user_limit(self, product, customer, coupon_factory, order_factory):
        coupon = coupon_factory(max_uses_per_user=1)
        CouponService.redeem(coupon, order_factory(user=customer), Decimal('2.99'), user=customer)
        lines, subtotal = priced(product)

        with pytest.raises(BusinessRuleError) as exc_info:
            CouponService.validate('PROMO10', lines, subtotal, user=customer)
        assert rule_of(exc_info) == 'coupon_user_limit'

    def test_restricted_to_products(self, product, product_factory, coupon_factory):
        other = product_factory(name='Caderno', price=Decimal('10.00'))
        coupon_factory(applies_to=Coupon.APPLIES_PRODUCTS, products=[other])
        lines = price_items([
            {'product_id': product.id, 'quantity': 1},
            {'product_id': other.id, 'quantity': 1},
        ])

        result = CouponService.validate('PROMO10', lines, subtotal_of(lines))

        assert result.applicable_total == Decimal('10.00')
        assert result.discount == Decimal('1.00')

    def test_restricted_to_variations_not_in_cart(self, product, variation, variation_factory, coupon_factory):
        other_variation = variation_factory(product, name='A4')
        coupon_factory(applies_to=Coupon.APPLIES_VARIATIONS, variations=[other_variation])
        lines, subtotal = priced(product, variation)

        with pytest.raises(BusinessRuleError) as exc_info:
            CouponService.validate('PROMO10', lines, subtotal)
        assert rule_of(exc_info) == 'coupon_not_applicable'

    def test_product_and_variation_links_both_count(self, product, variation, product_factory, coupon_factory):
        other = product_factory(name='Caderno', price=Decimal('10.00'))
        third = product_factory(name='Agenda', price=Decimal('50.00'))
        coupon_factory(applies_to=Coupon.APPLIES_PRODUCTS, products=[other], variations=[variation])
        lines = price_items([
            {'product_id': product.id, 'variation_id': variation.id, 'quantity': 1},
            {'product_id': other.id, 'quantity': 1},
            {'product_id': third.id, 'quantity': 1},
        ])

        result = CouponService.validate('PROMO10', lines, subtotal_of(lines))

        assert result.applicable_total == Decimal('29.90')
        assert result.discount == Decimal('2.99')


class TestCouponRedemption:

    def test_redeem_is_idempotent_per_order(self, customer, coupon_factory, order_factory):
        coupon = coupon_factory()
        order = order_factory(user=customer)

        first = CouponService.redeem(coupon, order, Decimal('2.99'), user=customer)
        second = CouponService.redeem(coupon, order, Decimal('2.99'), user=customer)

        coupon.refresh_from_db()
        assert (first, second) == (True, False)
        assert coupon.used_count == 1
        assert CouponRedemption.objects.filter(order=order).count() == 1


# =============================================================================
# Admin
# =============================================================================

class TestCouponAdmin:

    def test_save_normalizes_code(self, admin_user):
        coupon = CouponService.save_coupon(
            {'code': ' natal ', 'type': Coupon.TYPE_FIXED, 'value': Decimal('5')},
            user=admin_user
        )

        assert coupon.code == 'NATAL'
        assert coupon.created_by == admin_user

    def test_duplicate_code(self, coupon_factory):
        coupon_factory(code='NATAL')

        with pytest.raises(ValidationError) as exc_info:
            CouponService.save_coupon({'code': 'natal', 'value': Decimal('5')})
        assert exc_info.value.field == 'code'

    def test_percent_above_100(self):
        with pytest.raises(ValidationError):
            CouponService.save_coupon({'code': 'X', 'type': Coupon.TYPE_PERCENT, 'value': Decimal('150')})

    def test_dates_must_be_ordered(self):
        now = timezone.now()
        with pytest.raises(ValidationError):
            CouponService.save_coupon({
                'code': 'X', 'value': Decimal('5'), 'starts_at': now, 'ends_at': now - timedelta(days=1),
            })

    def test_products_required_when_restricted(self):
        with pytest.raises(ValidationError) as exc_info:
            CouponService.save_coupon({
                'code': 'X', 'value': Decimal('5'), 'applies_to': Coupon.APPLIES_PRODUCTS,
            })
        assert exc_info.value.field == 'product_ids'
        assert not Coupon.objects.exists()

    def test_admin_crud(self, admin_client, product):
        response = admin_client.post('/api/admin/coupons/', {
            'code': 'planner15',
            'type': 'percent',
            'value': '15',
            'applies_to': 'products',
            'product_ids': [product.id],
        }, format='json')
        assert response.status_code == 201
        assert response.data['code'] == 'PLANNER15'
        assert response.data['product_ids'] == [product.id]
        coupon_id = response.data['id']

        response = admin_client.patch(f'/api/admin/coupons/{coupon_id}/', {'is_active': False}, format='json')
        assert response.status_code == 200
        assert response.data['is_active'] is False

        response = admin_client.get('/api/admin/coupons/', {'search': 'planner', 'is_active': 'false'})
        assert [c['code'] for c in response.data] == ['PLANNER15']

    def test_customer_cannot_manage(self, customer_client):
        response = customer_client.get('/api/admin/coupons/')

        assert response.status_code == 403


# =============================================================================
# Endpoint público
# =============================================================================

class TestValidateEndpoint:

    def test_validate_with_items(self, api_client, product, coupon_factory):
        coupon_factory()

        response = api_client.post('/api/coupons/validate/', {
            'code': 'promo10',
            'items': [{'product_id': product.id, 'quantity': 1}],
        }, format='json')

        assert response.status_code == 200
        assert response.data['valid'] is True
        assert response.data['discount'] == '2.99'

    def test_validate_uses_session_cart(self, api_client, product, coupon_factory):
        coupon_factory()
        api_client.post('/api/cart/items/', {'product_id': product.id}, format='json')

        response = api_client.post('/api/coupons/validate/', {'code': 'PROMO10'}, format='json')

        assert response.status_code == 200
        assert response.data['original_total'] == '29.90'

    def test_empty_cart(self, api_client, coupon_factory):
        coupon_factory()

        response = api_client.post('/api/coupons/validate/', {'code': 'PROMO10'}, format='json')

        assert response.status_code == 400

    def test_expired_returns_rule(self, api_client, product, coupon_factory):
        coupon_factory(ends_at=timezone.now() - timedelta(hours=1))

        response = api_client.post('/api/coupons/validate/', {
            'code': 'PROMO10', 'items': [{'product_id': product.id}],
        }, format='json')

        assert response.status_code == 400
        assert response.data['rule'] == 'coupon_expired'

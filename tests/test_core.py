"""
Testes do núcleo: exceções de domínio, handler do DRF, rate limit,
dinheiro e slugs.
"""

from decimal import Decimal

import pytest
from rest_framework.exceptions import NotAuthenticated

from apps.core.exception_handler import store_exception_handler
from apps.core.exceptions import (
    BusinessRuleError,
    NotFoundError,
    RateLimitedError,
    StoreError,
    ValidationError,
)
from apps.core.money import format_brl, quantize, to_cents, to_decimal
from apps.core.rate_limit import check_rate_limit, enforce_rate_limit
from apps.core.text import slugify_pt, unique_slugify


# =============================================================================
# Exceções
# =============================================================================

class TestExceptions:

    def test_validation_error_code_includes_field(self):
        error = ValidationError('Quantidade inválida', field='quantity')

        assert error.code == 'VALIDATION_ERROR_QUANTITY'
        assert error.to_dict() == {
            'error': 'VALIDATION_ERROR_QUANTITY',
            'message': 'Quantidade inválida',
            'field': 'quantity',
        }

    def test_not_found_serializes_entity(self):
        error = NotFoundError('Pedido não encontrado', entity_type='order', entity_id=42)

        assert error.status_code == 404
        assert error.to_dict()['entity_id'] == '42'

    def test_business_rule_has_rule(self):
        error = BusinessRuleError('Pedido já foi pago', rule='order_already_paid')

        assert error.status_code == 400
        assert error.to_dict()['rule'] == 'order_already_paid'

    def test_str_contains_code(self):
        assert str(StoreError('falhou', code='X')) == '[X] falhou'


class TestExceptionHandler:

    def test_domain_error_becomes_json_response(self):
        response = store_exception_handler(NotFoundError('Sumiu'), {})

        assert response.status_code == 404
        assert response.data['error'] == 'NOT_FOUND'

    def test_rate_limit_sets_retry_after(self):
        response = store_exception_handler(RateLimitedError(retry_after=7), {})

        assert response.status_code == 429
        assert response['Retry-After'] == '7'

    def test_drf_exceptions_use_default_handler(self):
        response = store_exception_handler(NotAuthenticated(), {})

        assert response.status_code in (401, 403)

    def test_unexpected_error_becomes_500(self):
        response = store_exception_handler(RuntimeError('boom'), {})

        assert response.status_code == 500
        assert response.data['error'] == 'INTERNAL_ERROR'


# =============================================================================
# Rate limit
# =============================================================================

class TestRateLimit:

    def test_blocks_after_limit_within_window(self):
        now = 1_000_000.0
        results = [check_rate_limit('1.2.3.4', 2, 60, scope='login', now=now) for _ in range(3)]

        assert [r.allowed for r in results] == [True, True, False]
        assert results[0].remaining == 1
        assert results[2].remaining == 0

    def test_new_window_resets_counter(self):
        check_rate_limit('user-1', 1, 60, now=1_000_000.0)
        blocked = check_rate_limit('user-1', 1, 60, now=1_000_010.0)
        next_window = check_rate_limit('user-1', 1, 60, now=1_000_080.0)

        assert not blocked.allowed
        assert next_window.allowed

    def test_scopes_are_independent(self):
        check_rate_limit('x', 1, 60, scope='login', now=0)
        result = check_rate_limit('x', 1, 60, scope='download', now=0)

        assert result.allowed

    def test_enforce_raises(self, settings):
        settings.RATE_LIMITS = {'pix': (1, 60)}
        enforce_rate_limit('pix', 'user-9')

        with pytest.raises(RateLimitedError) as exc_info:
            enforce_rate_limit('pix', 'user-9')
        assert exc_info.value.retry_after >= 1


# =============================================================================
# Dinheiro e texto
# =============================================================================

class TestMoney:

    def test_format_brl(self):
        assert format_brl(Decimal('1234.5')) == 'R$ 1.234,50'
        assert format_brl(Decimal('0')) == 'R$ 0,00'

    def test_quantize_rounds_half_up(self):
        assert quantize(Decimal('2.345')) == Decimal('2.35')

    def test_to_cents(self):
        assert to_cents(Decimal('29.90')) == 2990

    def test_to_decimal_handles_garbage(self):
        assert to_decimal('12.5') == Decimal('12.5')
        assert to_decimal('abc', default=Decimal('0')) == Decimal('0')
        assert to_decimal(None) is None


class TestSlugs:

    def test_slugify_strips_accents(self):
        assert slugify_pt('Planner Mensal Édição Coração') == 'planner-mensal-edicao-coracao'

    @pytest.mark.django_db
    def test_unique_slugify_appends_suffix(self, product_factory):
        from apps.catalog.models import Product

        product_factory(name='Caderno', slug='caderno')
        product_factory(name='Caderno 2', slug='caderno-1')

        assert unique_slugify(Product, 'Caderno') == 'caderno-2'

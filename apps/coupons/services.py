import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Any, Dict

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.catalog.models import Product, ProductVariation
from apps.core.exceptions import BusinessRuleError, NotFoundError, ValidationError
from apps.core.money import format_brl, quantize
from .models import Coupon, CouponRedemption

logger = logging.getLogger(__name__)


@dataclass
class CouponResult:
    coupon: Coupon
    discount: Decimal
    original_total: Decimal
    new_total: Decimal
    applicable_total: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': True,
            'code': self.coupon.code,
            'type': self.coupon.type,
            'value': str(self.coupon.value),
            'discount': str(self.discount),
            'original_total': str(self.original_total),
            'new_total': str(self.new_total),
            'new_total_display': format_brl(self.new_total),
        }


class CouponService:

    @staticmethod
    def get_by_code(code: str) -> Coupon:
        normalized = (code or '').strip().upper()
        coupon = Coupon.objects.filter(code=normalized).first()
        if coupon is None:
            raise NotFoundError('Cupom não encontrado', entity_type='coupon', entity_id=normalized)
        return coupon

    @staticmethod
    def applicable_total(coupon: Coupon, lines: Iterable) -> Decimal:
        lines = list(lines)
        if coupon.applies_to in (Coupon.APPLIES_PRODUCTS, Coupon.APPLIES_VARIATIONS):
            # Either link qualifies a line, whatever `applies_to` says
            products = set(coupon.products.values_list('id', flat=True))
            variations = set(coupon.variations.values_list('id', flat=True))
            lines = [
                line for line in lines
                if line.product_id in products
                or (line.variation_id and line.variation_id in variations)
            ]
        return quantize(sum((line.line_total for line in lines), Decimal('0.00')))

    @staticmethod
    def validate(code: str, lines: List, subtotal: Decimal, user=None, now=None) -> CouponResult:
        """
        Check the coupon against the priced cart lines and compute the discount.

        Checks run in order: existence, active flag, start date, end date,
        global usage, per-user usage, minimum subtotal, applicable items.
        """
        now = now or timezone.now()
        coupon = CouponService.get_by_code(code)

        if not coupon.is_active:
            raise BusinessRuleError('Cupom inativo', rule='coupon_inactive')
        if coupon.starts_at and coupon.starts_at > now:
            raise BusinessRuleError('Cupom ainda não está válido', rule='coupon_not_started')
        if coupon.ends_at and coupon.ends_at < now:
            raise BusinessRuleError('Cupom expirado', rule='coupon_expired')
        if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
            raise BusinessRuleError('Cupom esgotado', rule='coupon_exhausted')
        if user is not None and user.is_authenticated and coupon.max_uses_per_user:
            used_by_user = CouponRedemption.objects.filter(coupon=coupon, user=user).count()
            if used_by_user >= coupon.max_uses_per_user:
                raise BusinessRuleError('Você já utilizou este cupom', rule='coupon_user_limit')
        if coupon.min_subtotal is not None and subtotal < coupon.min_subtotal:
            raise BusinessRuleError(
                f'Valor mínimo para este cupom: {format_brl(coupon.min_subtotal)}',
                rule='coupon_min_subtotal'
            )

        applicable = CouponService.applicable_total(coupon, lines)
        if applicable <= 0:
            raise BusinessRuleError(
                'Cupom não se aplica aos itens do carrinho',
                rule='coupon_not_applicable'
            )

        if coupon.type == Coupon.TYPE_PERCENT:
            discount = quantize(applicable * coupon.value / Decimal('100'))
        else:
            discount = quantize(min(coupon.value, applicable))

        new_total = quantize(max(Decimal('0.00'), subtotal - discount))
        return CouponResult(
            coupon=coupon,
            discount=discount,
            original_total=quantize(subtotal),
            new_total=new_total,
            applicable_total=applicable,
        )

    @staticmethod
    @transaction.atomic
    def redeem(coupon: Coupon, order, amount: Decimal, user=None) -> bool:
        """Record one use of the coupon for the order. Idempotent per order."""
        _, created = CouponRedemption.objects.get_or_create(
            order=order,
            defaults={
                'coupon': coupon,
                'user': user if user is not None and user.is_authenticated else None,
                'amount_discounted': amount,
            }
        )
        if created:
            Coupon.objects.filter(pk=coupon.pk).update(used_count=F('used_count') + 1)
            logger.info(f"Cupom {coupon.code} utilizado no pedido {order.pk}")
        return created

    # =========================================================================
    # Admin
    # =========================================================================

    @staticmethod
    @transaction.atomic
    def save_coupon(data: Dict[str, Any], coupon: Optional[Coupon] = None, user=None) -> Coupon:
        product_ids = data.pop('product_ids', None)
        variation_ids = data.pop('variation_ids', None)

        if 'code' in data:
            data['code'] = data['code'].strip().upper()
            duplicate = Coupon.objects.filter(code=data['code'])
            if coupon is not None:
                duplicate = duplicate.exclude(pk=coupon.pk)
            if duplicate.exists():
                raise ValidationError(f'Já existe um cupom com o código {data["code"]}', field='code')

        if data.get('type', getattr(coupon, 'type', None)) == Coupon.TYPE_PERCENT:
            value = data.get('value', getattr(coupon, 'value', None))
            if value is not None and value > 100:
                raise ValidationError('Percentual não pode passar de 100', field='value')

        starts_at = data.get('starts_at', getattr(coupon, 'starts_at', None))
        ends_at = data.get('ends_at', getattr(coupon, 'ends_at', None))
        if starts_at and ends_at and ends_at <= starts_at:
            raise ValidationError('Data final deve ser depois da inicial', field='ends_at')

        if coupon is None:
            coupon = Coupon(created_by=user if user is not None and user.is_authenticated else None)
        for field, value in data.items():
            setattr(coupon, field, value)
        coupon.save()

        if product_ids is not None:
            found = set(Product.objects.filter(id__in=product_ids).values_list('id', flat=True))
            missing = [pid for pid in product_ids if pid not in found]
            if missing:
                raise ValidationError(f'Produtos não encontrados: {missing}', field='product_ids')
            coupon.products.set(found)
        if variation_ids is not None:
            found = set(ProductVariation.objects.filter(id__in=variation_ids).values_list('id', flat=True))
            missing = [vid for vid in variation_ids if vid not in found]
            if missing:
                raise ValidationError(f'Variações não encontradas: {missing}', field='variation_ids')
            coupon.variations.set(found)

        if coupon.applies_to == Coupon.APPLIES_PRODUCTS and not coupon.products.exists():
            raise ValidationError('Selecione ao menos um produto', field='product_ids')
        if coupon.applies_to == Coupon.APPLIES_VARIATIONS and not coupon.variations.exists():
            raise ValidationError('Selecione ao menos uma variação', field='variation_ids')

        logger.info(f"Cupom salvo: {coupon.code}")
        return coupon

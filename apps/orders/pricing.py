"""
Server-side pricing of checkout items.

Client-sent prices are ignored: every line is priced from the database
with one query for products and one for variations.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Any

from apps.catalog.models import Product, ProductVariation
from apps.core.exceptions import ValidationError
from apps.core.money import quantize


@dataclass
class PricedLine:
    product: Product
    variation: Optional[ProductVariation]
    quantity: int
    unit_price: Decimal

    @property
    def product_id(self):
        return self.product.id

    @property
    def variation_id(self):
        return self.variation.id if self.variation else None

    @property
    def name(self):
        if self.variation:
            return f'{self.product.name} - {self.variation.name}'
        return self.product.name

    @property
    def line_total(self) -> Decimal:
        return quantize(self.unit_price * self.quantity)


def _normalize(raw: Dict[str, Any]):
    try:
        product_id = int(raw.get('product_id') or raw.get('productId'))
        variation_id = raw.get('variation_id', raw.get('variationId'))
        variation_id = int(variation_id) if variation_id not in (None, '', 0, '0') else None
        quantity = int(raw.get('quantity', 1))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError('Item inválido no carrinho', field='items')
    if quantity < 1:
        raise ValidationError('Quantidade deve ser pelo menos 1', field='items')
    return product_id, variation_id, quantity


def price_items(items: Iterable[Dict[str, Any]]) -> List[PricedLine]:
    items = list(items or [])
    if not items:
        raise ValidationError('Carrinho vazio', field='items')

    normalized = [_normalize(raw) for raw in items]
    product_ids = {pid for pid, _, _ in normalized}
    variation_ids = {vid for _, vid, _ in normalized if vid}

    product_map = Product.objects.filter(id__in=product_ids, is_active=True).in_bulk()
    variation_map = ProductVariation.objects.filter(
        id__in=variation_ids, is_active=True
    ).in_bulk() if variation_ids else {}

    lines = []
    for product_id, variation_id, quantity in normalized:
        product = product_map.get(product_id)
        if product is None:
            raise ValidationError(f'Produto {product_id} não encontrado ou inativo', field='items')
        variation = variation_map.get(variation_id) if variation_id else None
        if variation_id and (variation is None or variation.product_id != product.id):
            raise ValidationError(f'Variação inválida para {product.name}', field='items')

        unit_price = variation.price if variation else product.price
        lines.append(PricedLine(product, variation, quantity, unit_price))

    if subtotal_of(lines) <= 0:
        raise ValidationError('Total inválido', field='items')
    return lines


def subtotal_of(lines: Iterable[PricedLine]) -> Decimal:
    return quantize(sum((line.line_total for line in lines), Decimal('0.00')))

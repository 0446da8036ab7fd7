"""
Session-held shopping cart.

The session stores only `{"<product_id>:<variation_id|0>": quantity}`;
names and prices are always read back from the database.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Any

from apps.catalog.models import Product, ProductVariation
from apps.catalog.services.catalog import main_images
from apps.core.exceptions import NotFoundError, ValidationError
from apps.core.money import format_brl

logger = logging.getLogger(__name__)

SESSION_KEY = 'cart'


def cart_item_key(product_id, variation_id=None) -> str:
    return f'{product_id}:{variation_id or 0}'


def parse_item_key(item_key) -> Optional[Tuple[int, Optional[int]]]:
    try:
        pid_text, vid_text = str(item_key).split(':', 1)
        product_id = int(pid_text)
        variation_id = int(vid_text)
    except (ValueError, TypeError):
        return None
    return product_id, (variation_id or None)


class Cart:

    def __init__(self, session):
        self.session = session
        cart = session.get(SESSION_KEY)
        if not isinstance(cart, dict):
            cart = {}
            session[SESSION_KEY] = cart
        self.items = cart

    def _save(self):
        self.session[SESSION_KEY] = self.items
        self.session.modified = True

    def add(self, product_id: int, variation_id: Optional[int] = None, quantity: int = 1) -> str:
        if quantity < 1:
            raise ValidationError('Quantidade deve ser pelo menos 1', field='quantity')

        product = Product.objects.filter(pk=product_id, is_active=True).first()
        if product is None:
            raise NotFoundError('Produto não encontrado', entity_type='product', entity_id=product_id)
        if variation_id:
            exists = ProductVariation.objects.filter(
                pk=variation_id, product_id=product_id, is_active=True
            ).exists()
            if not exists:
                raise ValidationError(f'Variação inválida para {product.name}', field='variation_id')

        key = cart_item_key(product_id, variation_id)
        self.items[key] = int(self.items.get(key, 0)) + quantity
        self._save()
        return key

    def update(self, item_key: str, quantity: int) -> None:
        if item_key not in self.items:
            raise NotFoundError('Item não está no carrinho', entity_type='cart_item', entity_id=item_key)
        if quantity <= 0:
            self.items.pop(item_key)
        else:
            self.items[item_key] = quantity
        self._save()

    def remove(self, item_key: str) -> None:
        if self.items.pop(item_key, None) is None:
            raise NotFoundError('Item não está no carrinho', entity_type='cart_item', entity_id=item_key)
        self._save()

    def clear(self) -> None:
        self.items = {}
        self._save()

    def as_order_items(self) -> List[Dict[str, Any]]:
        """Cart lines in the shape order pricing expects."""
        result = []
        for item_key, quantity in self.items.items():
            parsed = parse_item_key(item_key)
            if parsed is None:
                continue
            product_id, variation_id = parsed
            result.append({
                'product_id': product_id,
                'variation_id': variation_id,
                'quantity': int(quantity),
            })
        return result

    def summary(self) -> Dict[str, Any]:
        """
        Re-price every line from the database. Lines whose product or
        variation disappeared (or became inactive) are dropped.
        """
        parsed_keys = []
        product_ids = set()
        variation_ids = set()
        for item_key in list(self.items.keys()):
            parsed = parse_item_key(item_key)
            if parsed is None:
                continue
            product_id, variation_id = parsed
            product_ids.add(product_id)
            if variation_id:
                variation_ids.add(variation_id)
            parsed_keys.append((item_key, product_id, variation_id))

        product_map = Product.objects.filter(id__in=product_ids, is_active=True).in_bulk()
        variation_map = ProductVariation.objects.filter(
            id__in=variation_ids, is_active=True
        ).in_bulk() if variation_ids else {}

        images = main_images(product_ids)

        items = []
        subtotal = Decimal('0.00')
        stale = []
        for item_key, product_id, variation_id in parsed_keys:
            product = product_map.get(product_id)
            variation = variation_map.get(variation_id) if variation_id else None
            if product is None or (variation_id and (variation is None or variation.product_id != product.id)):
                stale.append(item_key)
                continue

            quantity = int(self.items[item_key])
            unit_price = variation.price if variation else product.price
            line_total = unit_price * quantity
            subtotal += line_total
            items.append({
                'key': item_key,
                'product_id': product.id,
                'variation_id': variation.id if variation else None,
                'name': f'{product.name} - {variation.name}' if variation else product.name,
                'price': str(unit_price),
                'quantity': quantity,
                'subtotal': str(line_total),
                'image_url': images[product.id].url if product.id in images else None,
            })

        if stale:
            for item_key in stale:
                self.items.pop(item_key, None)
            self._save()
            logger.info(f"Itens removidos do carrinho (indisponíveis): {stale}")

        return {
            'items': items,
            'subtotal': str(subtotal),
            'subtotal_display': format_brl(subtotal),
            'count': sum(item['quantity'] for item in items),
        }

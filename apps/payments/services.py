"""
Checkout flows for Pix (Mercado Pago) and card (Stripe), plus the provider
webhooks that drive order status.

Totals always come from `OrderService.quote`, i.e. database prices.
Webhooks never trust their payload: the payment is re-fetched from the
provider before the order is reconciled.
"""

import hashlib
import hmac
import json
import logging
import re
import uuid
from typing import Any, Dict, Optional

import stripe
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import IntegrityError
from django.utils.crypto import constant_time_compare

from apps.core.exceptions import (
    BusinessRuleError,
    NotFoundError,
    PaymentProviderError,
    PermissionDeniedError,
    ValidationError,
)
from apps.core.money import to_cents
from apps.core.permissions import is_store_admin
from apps.core.rate_limit import enforce_rate_limit
from apps.orders.models import Order, OrderStatus, PaymentProvider
from apps.orders.services import OrderService
from .gateways import get_mercadopago, get_stripe, pix_qr_data

logger = logging.getLogger(__name__)

_RESOURCE_PAYMENT = re.compile(r'/payments/(\d+)')


def _as_dict(obj) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


def _check_owner(order: Order, user) -> None:
    if order.user_id != user.pk and not is_store_admin(user):
        raise PermissionDeniedError('Pedido pertence a outro usuário')


# =============================================================================
# Pix (Mercado Pago)
# =============================================================================

def create_pix_checkout(user, items, description: str, coupon_code: Optional[str] = None) -> Dict[str, Any]:
    if user is None or not user.is_authenticated:
        raise PermissionDeniedError('Usuário não autenticado')
    enforce_rate_limit('pix', str(user.pk))

    quote = OrderService.quote(items, coupon_code=coupon_code, user=user)
    if quote.total <= 0:
        raise ValidationError('Total inválido', field='items')

    order_id = uuid.uuid4()
    payment = get_mercadopago().create_pix_payment(
        amount=quote.total,
        description=description,
        email=user.email,
        idempotency_key=str(uuid.uuid4()),
        external_reference=str(order_id),
    )
    order = OrderService.create_order(
        provider=PaymentProvider.PIX,
        user=user,
        payment_id=str(payment['id']),
        quote=quote,
        order_id=order_id,
    )
    return {**pix_qr_data(payment), 'order_id': str(order.id)}


def regenerate_pix(order: Order, user) -> Dict[str, Any]:
    """Issue a fresh QR code for a pending Pix order (the previous one expired)."""
    _check_owner(order, user)
    if order.payment_provider not in (PaymentProvider.PIX, PaymentProvider.MERCADO_PAGO):
        raise BusinessRuleError('Pedido não é um pagamento Pix', rule='order_not_pix')
    if order.status != OrderStatus.PENDING:
        raise BusinessRuleError('Pedido não está aguardando pagamento', rule='order_not_pending')

    enforce_rate_limit('pix', str(user.pk))
    payment = get_mercadopago().create_pix_payment(
        amount=order.total,
        description=f'Pedido #{order.short_id}',
        email=order.email,
        idempotency_key=str(uuid.uuid4()),
        external_reference=str(order.id),
    )
    previous = order.payment_id
    order.payment_id = str(payment['id'])
    order.save(update_fields=['payment_id', 'updated_at'])
    logger.info(f"Pix regenerado para pedido {order.id}: {previous} -> {order.payment_id}")
    return {**pix_qr_data(payment), 'order_id': str(order.id)}


def extract_payment_id(body: Dict[str, Any], query) -> Optional[str]:
    """Payment id from `data.id`, `id` or a `/payments/<id>` resource URL."""
    payment_id = query.get('data.id') or query.get('id')
    if payment_id:
        return str(payment_id)

    if not isinstance(body, dict):
        return None
    data = body.get('data')
    if isinstance(data, dict) and data.get('id'):
        return str(data['id'])
    if body.get('id') and isinstance(body['id'], (str, int)):
        return str(body['id'])
    resource = body.get('resource')
    if isinstance(resource, str):
        match = _RESOURCE_PAYMENT.search(resource)
        if match:
            return match.group(1)
        if resource.isdigit():
            return resource
    return None


def verify_mp_signature(signature: str, request_id: str, payment_id: str, secret: str) -> bool:
    """Check `x-signature: ts=...,v1=...` against HMAC-SHA256 of the manifest."""
    if not signature or not request_id:
        return False

    ts_value = ''
    v1_value = ''
    for part in signature.split(','):
        key, _, value = part.strip().partition('=')
        if key == 'ts':
            ts_value = value
        elif key == 'v1':
            v1_value = value
    if not ts_value or not v1_value:
        return False

    manifest = f'id:{payment_id};request-id:{request_id};ts:{ts_value};'
    expected = hmac.new(secret.encode('utf-8'), manifest.encode('utf-8'), hashlib.sha256).hexdigest()
    return constant_time_compare(expected, v1_value)


def _dedup_key(payment_id: str) -> str:
    return f'webhook:mercadopago:{payment_id}'


def handle_mp_webhook(body: Dict[str, Any], query, headers) -> Dict[str, Any]:
    payment_id = extract_payment_id(body, query)
    if not payment_id:
        logger.info("Webhook Mercado Pago sem ID de pagamento")
        return {'received': True, 'message': 'Notificação sem ID de pagamento'}

    secret = settings.MERCADOPAGO_WEBHOOK_SECRET
    if secret and not verify_mp_signature(
        headers.get('x-signature', ''),
        headers.get('x-request-id', ''),
        payment_id,
        secret,
    ):
        logger.warning(f"Assinatura inválida no webhook do pagamento {payment_id}")
        raise PermissionDeniedError('Assinatura inválida')

    if not cache.add(_dedup_key(payment_id), True, timeout=settings.WEBHOOK_DEDUP_SECONDS):
        logger.info(f"Webhook duplicado ignorado: {payment_id}")
        return {'status': 'duplicated'}

    try:
        return _reconcile_payment(payment_id)
    except Exception:
        # Let the provider retry
        cache.delete(_dedup_key(payment_id))
        raise


def _reconcile_payment(payment_id: str) -> Dict[str, Any]:
    payment = get_mercadopago().get_payment(payment_id)
    order = Order.objects.filter(payment_id=str(payment_id)).first()
    if order is None and payment.get('external_reference'):
        order = Order.objects.filter(pk=_parse_uuid(payment['external_reference'])).first()
    if order is None:
        logger.warning(f"Pedido não encontrado para pagamento {payment_id}")
        return {'received': True, 'message': 'Pedido não encontrado'}

    changed = OrderService.apply_payment_status(order, payment.get('status'), order.payment_provider)
    logger.info(f"Webhook MP {payment_id}: {payment.get('status')} -> pedido {order.id} ({order.status})")
    return {'received': True, 'order_id': str(order.id), 'status': order.status, 'changed': changed}


def _parse_uuid(value):
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def check_payment(payment_id: str, user) -> Dict[str, Any]:
    """Fetch a Mercado Pago payment on demand and reconcile its order."""
    order = Order.objects.filter(payment_id=str(payment_id)).first()
    if order is None:
        raise NotFoundError('Pedido não encontrado', entity_type='payment', entity_id=payment_id)
    _check_owner(order, user)

    payment = get_mercadopago().get_payment(payment_id)
    OrderService.apply_payment_status(order, payment.get('status'), order.payment_provider)
    return {
        'order_id': str(order.id),
        'payment_id': str(payment_id),
        'provider_status': payment.get('status'),
        'status': order.status,
        'payment_status': order.payment_status,
    }


# =============================================================================
# Stripe
# =============================================================================

def create_payment_intent(items, user=None, email: Optional[str] = None,
                          coupon_code: Optional[str] = None) -> Dict[str, Any]:
    if user is not None and not user.is_authenticated:
        user = None
    email = (user.email if user else email) or ''
    if not email:
        raise ValidationError('E-mail é obrigatório', field='email')

    quote = OrderService.quote(items, coupon_code=coupon_code, user=user)
    if quote.total <= 0:
        raise ValidationError('Total inválido', field='items')

    order_id = uuid.uuid4()
    metadata = {
        'order_id': str(order_id),
        'user_id': str(user.pk) if user else '',
        'email': email,
        'coupon_code': quote.coupon.code if quote.coupon else '',
        'items': json.dumps([
            {'product_id': line.product_id, 'variation_id': line.variation_id, 'quantity': line.quantity}
            for line in quote.lines
        ], separators=(',', ':')),
    }
    intent = _as_dict(get_stripe().create_payment_intent(
        amount_cents=to_cents(quote.total),
        currency=settings.STRIPE_CURRENCY,
        metadata=metadata,
        idempotency_key=str(order_id),
    ))
    order = OrderService.create_order(
        provider=PaymentProvider.STRIPE,
        user=user,
        email=email,
        payment_id=intent['id'],
        stripe_payment_intent_id=intent['id'],
        quote=quote,
        order_id=order_id,
    )
    return {'client_secret': intent['client_secret'], 'order_id': str(order.id)}


def stripe_payment_status(intent_id: str) -> Dict[str, Any]:
    intent = _as_dict(get_stripe().retrieve_intent(intent_id))
    order = Order.objects.filter(stripe_payment_intent_id=intent_id).first()
    if order is not None:
        OrderService.apply_payment_status(order, intent.get('status'), PaymentProvider.STRIPE)
    return {
        'status': intent.get('status'),
        'amount': intent.get('amount'),
        'currency': intent.get('currency'),
        'order_id': str(order.id) if order else None,
        'order_status': order.status if order else None,
    }


def resume_payment(order: Order, user=None) -> Dict[str, Any]:
    """Client secret of a pending card order so the buyer can finish paying."""
    if user is not None and user.is_authenticated:
        _check_owner(order, user)
    if order.status == OrderStatus.COMPLETED:
        raise BusinessRuleError('Pedido já foi pago', rule='order_already_paid')
    if order.status == OrderStatus.CANCELLED:
        raise BusinessRuleError('Pedido cancelado não pode ser pago', rule='order_cancelled')
    if order.status != OrderStatus.PENDING:
        raise BusinessRuleError('Pedido não está aguardando pagamento', rule='order_not_pending')
    if not order.stripe_payment_intent_id:
        raise BusinessRuleError('Payment Intent não encontrado para este pedido', rule='order_without_intent')

    intent = _as_dict(get_stripe().retrieve_intent(order.stripe_payment_intent_id))
    if intent.get('status') == 'succeeded':
        raise BusinessRuleError('Pagamento já foi confirmado, aguardando processamento', rule='intent_succeeded')
    if intent.get('status') == 'canceled':
        raise BusinessRuleError('Payment Intent foi cancelado', rule='intent_canceled')

    return {
        'client_secret': intent['client_secret'],
        'order_id': str(order.id),
        'amount': intent.get('amount'),
        'currency': intent.get('currency'),
    }


def _order_from_intent(intent: Dict[str, Any]) -> Optional[Order]:
    """Create a completed order from intent metadata when none exists yet."""
    metadata = _as_dict(intent.get('metadata'))
    try:
        items = json.loads(metadata.get('items') or '[]')
    except json.JSONDecodeError:
        items = []
    if not items:
        logger.error(f"PaymentIntent {intent['id']} sem itens nos metadados")
        return None

    user = None
    if metadata.get('user_id'):
        user = get_user_model().objects.filter(pk=metadata['user_id']).first()
    email = metadata.get('email') or intent.get('receipt_email') or (user.email if user else '')

    try:
        quote = OrderService.quote(items, coupon_code=metadata.get('coupon_code') or None, user=user)
    except (BusinessRuleError, NotFoundError) as e:
        logger.warning(f"Cupom ignorado no PaymentIntent {intent['id']}: {e}")
        quote = OrderService.quote(items, user=user)

    try:
        return OrderService.create_order(
            provider=PaymentProvider.STRIPE,
            user=user,
            email=email,
            payment_id=intent['id'],
            stripe_payment_intent_id=intent['id'],
            quote=quote,
            order_id=_parse_uuid(metadata.get('order_id')),
            status=OrderStatus.COMPLETED,
        )
    except IntegrityError:
        logger.info(f"Pedido do PaymentIntent {intent['id']} já existe")
        return Order.objects.filter(stripe_payment_intent_id=intent['id']).first()


def handle_stripe_webhook(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    if not signature:
        raise ValidationError('Assinatura Stripe ausente', field='stripe_signature')
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise PaymentProviderError('Webhook do Stripe não configurado', provider='stripe')

    try:
        event = get_stripe().construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Webhook Stripe rejeitado: {e}")
        raise ValidationError('Assinatura Stripe inválida', field='stripe_signature')

    event = _as_dict(event)
    event_type = event.get('type')
    intent = _as_dict(event['data']['object'])
    logger.info(f"Webhook Stripe: {event_type} ({intent.get('id')})")

    if event_type == 'payment_intent.succeeded':
        order = Order.objects.filter(stripe_payment_intent_id=intent['id']).first()
        if order is not None:
            OrderService.apply_payment_status(order, 'succeeded', PaymentProvider.STRIPE)
        else:
            _order_from_intent(intent)
    elif event_type in ('payment_intent.payment_failed', 'payment_intent.canceled'):
        order = Order.objects.filter(stripe_payment_intent_id=intent['id']).first()
        if order is not None:
            OrderService.apply_payment_status(order, intent.get('status'), PaymentProvider.STRIPE)

    return {'received': True}

"""
Order lifecycle: creation from server-priced items, status reconciliation
with the payment providers, cancellation, customer and admin views.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.mail import EmailMultiAlternatives
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.template.loader import render_to_string
from django.utils import timezone

from apps.catalog.models import DigitalFile
from apps.core.exceptions import (
    BusinessRuleError,
    NotFoundError,
    PaymentProviderError,
    PermissionDeniedError,
    ValidationError,
)
from apps.core.money import format_brl, quantize
from apps.core.permissions import is_store_admin
from apps.coupons.models import Coupon
from apps.coupons.services import CouponService
from apps.payments.gateways import get_mercadopago, get_stripe
from .models import Order, OrderItem, OrderStatus, PaymentProvider
from .pricing import PricedLine, price_items, subtotal_of

logger = logging.getLogger(__name__)


# provider status -> (order status, payment_status)
MERCADO_PAGO_STATUS = {
    'approved': (OrderStatus.COMPLETED, 'paid'),
    'paid': (OrderStatus.COMPLETED, 'paid'),
    'authorized': (OrderStatus.COMPLETED, 'paid'),
    'pending': (OrderStatus.PENDING, 'pending'),
    'in_process': (OrderStatus.PENDING, 'pending'),
    'in_mediation': (OrderStatus.PENDING, 'pending'),
    'cancelled': (OrderStatus.CANCELLED, 'cancelled'),
    'rejected': (OrderStatus.CANCELLED, 'cancelled'),
    'expired': (OrderStatus.CANCELLED, 'cancelled'),
    'charged_back': (OrderStatus.CANCELLED, 'cancelled'),
    'refunded': (OrderStatus.REFUNDED, 'refunded'),
}

STRIPE_STATUS = {
    'succeeded': (OrderStatus.COMPLETED, 'paid'),
    'processing': (OrderStatus.PROCESSING, 'processing'),
    'canceled': (OrderStatus.CANCELLED, 'cancelled'),
}

# Only an admin override moves an order out of these. A paid order only
# leaves `completed` through them.
FINAL_STATUSES = {OrderStatus.CANCELLED, OrderStatus.REFUNDED}


def can_transition(current: str, target: str) -> bool:
    if current in FINAL_STATUSES:
        return False
    if current == OrderStatus.COMPLETED:
        return target in FINAL_STATUSES | {OrderStatus.COMPLETED}
    return True


def map_provider_status(provider: str, provider_status: str):
    provider_status = (provider_status or '').lower()
    if provider == PaymentProvider.STRIPE:
        if provider_status.startswith('requires_'):
            return OrderStatus.PENDING, 'pending'
        return STRIPE_STATUS.get(provider_status)
    return MERCADO_PAGO_STATUS.get(provider_status)


@dataclass
class Quote:
    lines: List[PricedLine]
    subtotal: Decimal
    discount: Decimal = Decimal('0.00')
    coupon: Optional[Coupon] = None
    total: Decimal = field(default=Decimal('0.00'))


class OrderService:

    # =========================================================================
    # Creation
    # =========================================================================

    @staticmethod
    def quote(items, coupon_code: Optional[str] = None, user=None) -> Quote:
        """Price the items from the database and apply the coupon, if any."""
        lines = price_items(items)
        subtotal = subtotal_of(lines)
        quote = Quote(lines=lines, subtotal=subtotal, total=subtotal)
        if coupon_code:
            result = CouponService.validate(coupon_code, lines, subtotal, user=user)
            quote.coupon = result.coupon
            quote.discount = result.discount
            quote.total = result.new_total
        return quote

    @staticmethod
    @transaction.atomic
    def create_order(
        items=None,
        provider: str = PaymentProvider.PIX,
        user=None,
        email: Optional[str] = None,
        payment_id: str = '',
        coupon_code: Optional[str] = None,
        status: str = OrderStatus.PENDING,
        stripe_payment_intent_id: Optional[str] = None,
        quote: Optional[Quote] = None,
        order_id: Optional[uuid.UUID] = None,
    ) -> Order:
        if quote is None:
            quote = OrderService.quote(items, coupon_code=coupon_code, user=user)

        if user is not None and user.is_authenticated:
            email = email or user.email
        else:
            user = None
        if not email:
            raise ValidationError('E-mail é obrigatório', field='email')

        order = Order.objects.create(
            id=order_id or uuid.uuid4(),
            user=user,
            email=email.strip().lower(),
            status=OrderStatus.PENDING,
            subtotal=quote.subtotal,
            discount_amount=quote.discount,
            total=quote.total,
            currency='BRL',
            payment_provider=provider,
            payment_id=payment_id or '',
            stripe_payment_intent_id=stripe_payment_intent_id,
            payment_status='pending',
            coupon=quote.coupon,
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=line.product,
                variation=line.variation,
                name=line.name,
                price=line.unit_price,
                quantity=line.quantity,
                total=line.line_total,
            )
            for line in quote.lines
        ])
        logger.info(f"Pedido criado: {order.id} ({provider}) total R$ {order.total}")

        if status != OrderStatus.PENDING:
            OrderService.transition(order, status)
        return order

    # =========================================================================
    # Status reconciliation
    # =========================================================================

    @staticmethod
    def transition(order: Order, status: str, payment_status: Optional[str] = None,
                   force: bool = False) -> bool:
        """
        Move the order to `status`. The first move into `completed` stamps
        `paid_at`, redeems the coupon and sends the confirmation e-mail.

        Cancelled and refunded orders are final, and a completed order only
        moves to one of those. `force` skips that check (admin override).
        Returns whether anything changed.
        """
        if status not in OrderStatus.values:
            raise ValidationError(f'Status inválido: {status}', field='status')
        if payment_status is None:
            payment_status = {
                OrderStatus.COMPLETED: 'paid',
                OrderStatus.CANCELLED: 'cancelled',
                OrderStatus.REFUNDED: 'refunded',
            }.get(status, status)

        with transaction.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            if locked.status == status and locked.payment_status == payment_status:
                return False

            if not force and not can_transition(locked.status, status):
                logger.warning(f"Ignorando {locked.status} -> {status} para pedido {order.pk}")
                order.status, order.payment_status = locked.status, locked.payment_status
                return False

            became_completed = status == OrderStatus.COMPLETED and locked.paid_at is None
            previous = locked.status
            locked.status = status
            locked.payment_status = payment_status
            update_fields = ['status', 'payment_status', 'updated_at']
            if became_completed:
                locked.paid_at = timezone.now()
                update_fields.append('paid_at')
            locked.save(update_fields=update_fields)

            if became_completed and locked.coupon_id:
                CouponService.redeem(locked.coupon, locked, locked.discount_amount, user=locked.user)

        logger.info(f"Pedido {order.pk}: {previous} -> {status} ({payment_status})")
        for name in update_fields:
            setattr(order, name, getattr(locked, name))

        if became_completed:
            OrderService.send_confirmation_safely(order)
        return True

    @staticmethod
    def apply_payment_status(order: Order, provider_status: str, provider: str) -> bool:
        mapped = map_provider_status(provider, provider_status)
        if mapped is None:
            logger.warning(f"Status desconhecido do provedor {provider}: {provider_status}")
            return False

        status, payment_status = mapped
        return OrderService.transition(order, status, payment_status)

    @staticmethod
    def get_order(order_id) -> Order:
        try:
            return Order.objects.get(pk=order_id)
        except (Order.DoesNotExist, ValueError, TypeError, DjangoValidationError):
            raise NotFoundError('Pedido não encontrado', entity_type='order', entity_id=order_id)

    @staticmethod
    def order_by_payment_intent(intent_id: str) -> Order:
        order = Order.objects.filter(stripe_payment_intent_id=intent_id).first()
        if order is None:
            raise NotFoundError('Pedido não encontrado', entity_type='order', entity_id=intent_id)
        return order

    @staticmethod
    def poll_status(order_id=None, payment_id=None) -> Dict[str, Any]:
        if order_id:
            order = OrderService.get_order(order_id)
        elif payment_id:
            order = Order.objects.filter(payment_id=str(payment_id)).first()
            if order is None:
                raise NotFoundError('Pedido não encontrado', entity_type='order', entity_id=payment_id)
        else:
            raise ValidationError('orderId ou paymentId é obrigatório', field='order_id')

        pix_providers = (PaymentProvider.PIX, PaymentProvider.MERCADO_PAGO)
        if order.status == OrderStatus.PENDING and order.payment_provider in pix_providers and order.payment_id:
            try:
                payment = get_mercadopago().get_payment(order.payment_id)
            except PaymentProviderError as e:
                logger.warning(f"Falha ao consultar pagamento {order.payment_id}: {e}")
            else:
                OrderService.apply_payment_status(order, payment.get('status'), order.payment_provider)

        return {
            'order_id': str(order.id),
            'status': order.status,
            'payment_status': order.payment_status,
        }

    @staticmethod
    def cancel_order(order: Order, user=None) -> Dict[str, Any]:
        if user is not None and order.user_id != user.pk and not is_store_admin(user):
            raise PermissionDeniedError('Pedido pertence a outro usuário')

        if order.status == OrderStatus.CANCELLED:
            return {'success': True, 'message': 'Pedido já estava cancelado'}
        if order.status == OrderStatus.COMPLETED:
            raise BusinessRuleError('Pedido já foi pago e não pode ser cancelado', rule='order_already_paid')
        if order.status != OrderStatus.PENDING:
            raise BusinessRuleError(
                f'Pedido com status {order.get_status_display()} não pode ser cancelado',
                rule='order_not_pending'
            )

        if order.stripe_payment_intent_id:
            try:
                get_stripe().cancel_intent(order.stripe_payment_intent_id)
            except PaymentProviderError as e:
                logger.warning(f"Não foi possível cancelar o PaymentIntent {order.stripe_payment_intent_id}: {e}")

        OrderService.transition(order, OrderStatus.CANCELLED)
        return {'success': True, 'message': 'Pedido cancelado'}

    # =========================================================================
    # Customer views
    # =========================================================================

    @staticmethod
    def _item_payload(item: OrderItem, downloadable: bool) -> Dict[str, Any]:
        return {
            'id': item.id,
            'product_id': item.product_id,
            'variation_id': item.variation_id,
            'name': item.name,
            'product_name': item.product.name if item.product else item.name,
            'variation_name': item.variation.name if item.variation else None,
            'price': str(item.price),
            'quantity': item.quantity,
            'total': str(item.total),
            'can_download': downloadable,
        }

    @staticmethod
    def order_payload(order: Order, items=None, downloadable_ids=frozenset()) -> Dict[str, Any]:
        items = order.items.all() if items is None else items
        return {
            'id': str(order.id),
            'email': order.email,
            'status': order.status,
            'status_label': order.get_status_display(),
            'payment_provider': order.payment_provider,
            'payment_status': order.payment_status,
            'subtotal': str(order.subtotal),
            'discount_amount': str(order.discount_amount),
            'total': str(order.total),
            'total_display': format_brl(order.total),
            'currency': order.currency,
            'coupon_code': order.coupon.code if order.coupon_id and order.coupon else None,
            'paid_at': order.paid_at,
            'created_at': order.created_at,
            'items': [
                OrderService._item_payload(item, item.id in downloadable_ids)
                for item in items
            ],
        }

    @staticmethod
    def downloadable_item_ids(order: Order, items) -> set:
        """Items of a completed order that have a file (variation first, then product)."""
        if order.status != OrderStatus.COMPLETED:
            return set()

        product_ids = {item.product_id for item in items if item.product_id}
        variation_ids = {item.variation_id for item in items if item.variation_id}
        files = DigitalFile.objects.filter(
            Q(product_id__in=product_ids) | Q(variation_id__in=variation_ids)
        ).values_list('product_id', 'variation_id')
        products_with_files = {pid for pid, _ in files if pid}
        variations_with_files = {vid for _, vid in files if vid}

        return {
            item.id for item in items
            if item.variation_id in variations_with_files or item.product_id in products_with_files
        }

    @staticmethod
    def my_orders(user) -> List[Dict[str, Any]]:
        orders = (
            Order.objects
            .filter(user=user)
            .select_related('coupon')
            .prefetch_related('items__product', 'items__variation')
            .order_by('-created_at')
        )
        return [OrderService.order_payload(order, list(order.items.all())) for order in orders]

    @staticmethod
    def order_detail(order_id, user) -> Dict[str, Any]:
        order = OrderService.get_order(order_id)
        if order.user_id != user.pk and not is_store_admin(user):
            raise PermissionDeniedError('Pedido pertence a outro usuário')

        items = list(order.items.select_related('product', 'variation'))
        return OrderService.order_payload(
            order, items, OrderService.downloadable_item_ids(order, items)
        )

    # =========================================================================
    # Confirmation e-mail
    # =========================================================================

    @staticmethod
    def send_confirmation(order: Order) -> None:
        items = list(order.items.select_related('product', 'variation'))
        customer_name = order.user.display_name if order.user else order.email
        context = {
            'order': order,
            'short_id': order.short_id,
            'customer_name': customer_name,
            'order_date': timezone.localtime(order.paid_at or order.created_at).strftime('%d/%m/%Y'),
            'items': [
                {
                    'name': item.product.name if item.product else item.name,
                    'variation_name': item.variation.name if item.variation else None,
                    'price': format_brl(item.price),
                }
                for item in items
            ],
            'total': format_brl(order.total),
            'orders_url': f"{settings.SITE_URL.rstrip('/')}/conta/pedidos",
            'link_minutes': settings.DOWNLOAD_LINK_TTL_SECONDS // 60,
            'max_downloads': settings.MAX_DOWNLOADS_PER_DAY,
        }
        subject = f'Seu pedido #{order.short_id} foi confirmado!'
        message = EmailMultiAlternatives(
            subject=subject,
            body=render_to_string('orders/email/confirmation.txt', context),
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[order.email],
        )
        message.attach_alternative(render_to_string('orders/email/confirmation.html', context), 'text/html')
        message.send()

        order.confirmation_sent_at = timezone.now()
        order.save(update_fields=['confirmation_sent_at'])
        logger.info(f"Confirmação enviada para {order.email} (pedido {order.pk})")

    @staticmethod
    def send_confirmation_safely(order: Order) -> bool:
        try:
            OrderService.send_confirmation(order)
        except Exception:
            logger.exception(f"Falha ao enviar confirmação do pedido {order.pk}")
            return False
        return True

    @staticmethod
    def resend_confirmation(order: Order) -> None:
        if not order.is_paid:
            raise PermissionDeniedError('Pagamento do pedido não foi aprovado')
        OrderService.send_confirmation(order)

    # =========================================================================
    # Admin
    # =========================================================================

    @staticmethod
    def admin_stats() -> Dict[str, Any]:
        stats = Order.objects.aggregate(
            total=Count('id'),
            revenue=Sum('total', filter=Q(status=OrderStatus.COMPLETED)),
            pending=Count('id', filter=Q(status=OrderStatus.PENDING)),
            completed=Count('id', filter=Q(status=OrderStatus.COMPLETED)),
            cancelled=Count('id', filter=Q(status=OrderStatus.CANCELLED)),
        )
        stats['revenue'] = str(quantize(stats['revenue'] or Decimal('0')))
        return stats

    @staticmethod
    def admin_list(status: Optional[str] = None, search: Optional[str] = None,
                   limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        queryset = Order.objects.select_related('user').annotate(items_count=Count('items'))
        if status:
            if status not in OrderStatus.values:
                raise ValidationError(f'Status inválido: {status}', field='status')
            queryset = queryset.filter(status=status)
        if search:
            queryset = queryset.filter(Q(email__icontains=search) | Q(payment_id=search))

        total = queryset.count()
        orders = queryset.order_by('-created_at')[offset:offset + limit]
        return {
            'orders': [
                {
                    'id': str(order.id),
                    'email': order.email,
                    'customer': order.user.display_name if order.user else order.email,
                    'status': order.status,
                    'status_label': order.get_status_display(),
                    'payment_provider': order.payment_provider,
                    'payment_status': order.payment_status,
                    'total': str(order.total),
                    'items_count': order.items_count,
                    'created_at': order.created_at,
                    'paid_at': order.paid_at,
                }
                for order in orders
            ],
            'stats': OrderService.admin_stats(),
            'pagination': {
                'total': total,
                'limit': limit,
                'offset': offset,
                'has_more': offset + limit < total,
            },
        }

    @staticmethod
    def admin_detail(order_id) -> Dict[str, Any]:
        order = OrderService.get_order(order_id)
        items = list(order.items.select_related('product', 'variation'))
        payload = OrderService.order_payload(order, items, OrderService.downloadable_item_ids(order, items))
        payload.update({
            'user': {
                'id': order.user.id,
                'name': order.user.display_name,
                'email': order.user.email,
            } if order.user else None,
            'payment_id': order.payment_id,
            'stripe_payment_intent_id': order.stripe_payment_intent_id,
            'confirmation_sent_at': order.confirmation_sent_at,
            'updated_at': order.updated_at,
        })
        return payload

    @staticmethod
    def update_status(order: Order, status: str) -> bool:
        if status not in OrderStatus.values:
            raise ValidationError(
                f"Status inválido. Use: {', '.join(OrderStatus.values)}",
                field='status'
            )
        return OrderService.transition(order, status, force=True)

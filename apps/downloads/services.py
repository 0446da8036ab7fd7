import hashlib
import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.utils import timezone

from apps.catalog.models import DigitalFile
from apps.core.exceptions import (
    BusinessRuleError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    ValidationError,
)
from apps.orders.models import OrderItem, OrderStatus
from apps.orders.services import OrderService
from .models import DownloadLog
from .storage import generate_file_key, get_storage, is_valid_pdf

logger = logging.getLogger(__name__)

ORDER_LINK_TTL_SECONDS = 60


def resolve_file(item: OrderItem) -> Optional[DigitalFile]:
    """The variation's file wins; the product's file is the fallback."""
    if item.variation_id:
        file = DigitalFile.objects.filter(variation_id=item.variation_id).first()
        if file:
            return file
    if item.product_id:
        return DigitalFile.objects.filter(product_id=item.product_id).first()
    return None


def _start_of_day(now):
    return timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)


class DownloadService:

    @staticmethod
    def generate_download_link(user, order_item_id, ip: str = '', user_agent: str = '', now=None) -> Dict[str, Any]:
        now = now or timezone.now()
        item = (
            OrderItem.objects
            .select_related('order', 'product', 'variation')
            .filter(pk=order_item_id)
            .first()
        )
        if item is None:
            raise NotFoundError('Item não encontrado', entity_type='order_item', entity_id=order_item_id)
        if item.order.user_id != user.pk:
            raise PermissionDeniedError('Você não tem permissão para acessar este item')
        if item.order.status != OrderStatus.COMPLETED:
            raise BusinessRuleError('Este pedido ainda não foi confirmado', rule='order_not_confirmed')

        max_downloads = settings.MAX_DOWNLOADS_PER_DAY
        downloads_today = DownloadLog.objects.filter(
            order_item=item,
            downloaded_at__gte=_start_of_day(now),
        ).count()
        if downloads_today >= max_downloads:
            raise RateLimitedError(f'Limite de {max_downloads} downloads por dia atingido para este item')

        file = resolve_file(item)
        if file is None:
            raise NotFoundError('Arquivo não disponível para este item', entity_type='file')

        expires_in = settings.DOWNLOAD_LINK_TTL_SECONDS
        url = get_storage().signed_url(file.path, expires_in)

        DownloadLog.objects.create(
            user=user,
            order=item.order,
            order_item=item,
            file=file,
            ip=ip or None,
            user_agent=user_agent or '',
        )
        download_count = downloads_today + 1
        logger.info(f"Download liberado: item {item.pk} para {user.email} ({download_count}/{max_downloads})")

        return {
            'download_url': url,
            'expires_in': expires_in,
            'download_count': download_count,
            'max_downloads': max_downloads,
            'remaining': max(0, max_downloads - download_count),
            'product_name': item.product.name if item.product else item.name,
            'variation_name': item.variation.name if item.variation else None,
        }

    @staticmethod
    def download_by_order(item_id, order_id=None, payment_intent=None) -> Dict[str, Any]:
        """Short-lived link for the checkout success page (guest buyers included)."""
        if order_id:
            order = OrderService.get_order(order_id)
        elif payment_intent:
            order = OrderService.order_by_payment_intent(payment_intent)
        else:
            raise ValidationError('orderId ou payment_intent é obrigatório', field='order_id')

        if not order.is_paid:
            raise PermissionDeniedError('Pagamento do pedido não foi aprovado')

        item = order.items.select_related('product', 'variation').filter(pk=item_id).first()
        if item is None:
            raise NotFoundError('Item não pertence ao pedido', entity_type='order_item', entity_id=item_id)

        file = resolve_file(item)
        if file is None:
            raise NotFoundError('Arquivo não disponível para este item', entity_type='file')

        return {
            'download_url': get_storage().signed_url(file.path, ORDER_LINK_TTL_SECONDS),
            'expires_in': ORDER_LINK_TTL_SECONDS,
            'file_name': file.original_name or file.name,
        }

    # =========================================================================
    # Admin
    # =========================================================================

    @staticmethod
    def upload_file(uploaded, product_id=None) -> Dict[str, Any]:
        """Store a PDF on R2 and return the fields of a DigitalFile row."""
        content_type = getattr(uploaded, 'content_type', None) or 'application/pdf'
        if not is_valid_pdf(uploaded.name, content_type):
            raise ValidationError('Apenas arquivos PDF são permitidos', field='file')
        if uploaded.size > settings.MAX_FILE_SIZE_BYTES:
            limit_mb = settings.MAX_FILE_SIZE_BYTES // (1024 * 1024)
            raise ValidationError(f'Arquivo maior que {limit_mb}MB', field='file')

        body = uploaded.read()
        key = generate_file_key(uploaded.name, product_id=product_id)
        get_storage().upload(key, body, 'application/pdf')

        return {
            'name': uploaded.name,
            'original_name': uploaded.name,
            'mime_type': 'application/pdf',
            'size': len(body),
            'path': key,
            'hash': hashlib.sha256(body).hexdigest(),
        }

    @staticmethod
    def delete_file(key: str) -> None:
        if not key:
            raise ValidationError('Chave do arquivo é obrigatória', field='key')
        get_storage().delete(key)

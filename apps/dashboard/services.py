from decimal import Decimal
from typing import Any, Dict

from django.contrib.auth import get_user_model
from django.db.models import Sum
from django.utils import timezone

from apps.catalog.models import DigitalFile, Product
from apps.core.money import quantize
from apps.downloads.models import DownloadLog
from apps.orders.models import Order, OrderStatus

RECENT_ORDERS = 10


def _start_of_month(now):
    return timezone.localtime(now).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def dashboard_stats(now=None) -> Dict[str, Any]:
    """Back-office home numbers; month figures use the store's local calendar."""
    now = now or timezone.now()
    month_start = _start_of_month(now)

    orders_this_month = Order.objects.filter(created_at__gte=month_start)
    revenue = orders_this_month.filter(status=OrderStatus.COMPLETED).aggregate(total=Sum('total'))['total']

    recent = (
        Order.objects
        .select_related('user')
        .prefetch_related('items')
        .order_by('-created_at')[:RECENT_ORDERS]
    )
    recent_orders = []
    for order in recent:
        items = list(order.items.all())
        recent_orders.append({
            'id': str(order.id),
            'customer': order.user.display_name if order.user else order.email,
            'product': items[0].name if items else '',
            'total': str(order.total),
            'status': order.status,
            'status_label': order.get_status_display(),
            'created_at': order.created_at,
        })

    return {
        'total_products': Product.objects.filter(is_active=True).count(),
        'total_users': get_user_model().objects.count(),
        'orders_this_month': orders_this_month.count(),
        'total_files': DigitalFile.objects.count(),
        'revenue_this_month': str(quantize(revenue or Decimal('0'))),
        'downloads_this_month': DownloadLog.objects.filter(downloaded_at__gte=month_start).count(),
        'recent_orders': recent_orders,
    }

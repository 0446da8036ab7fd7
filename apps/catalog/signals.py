"""
Django signals for the catalog app.
Logs price changes on products and variations; the full audit trail
lives in the simple_history tables.
"""

import logging

from django.db.models.signals import pre_save
from django.dispatch import receiver

from .models import Product, ProductVariation

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Product)
@receiver(pre_save, sender=ProductVariation)
def log_price_changes(sender, instance, **kwargs):
    if not instance.pk:
        return

    old_price = sender.objects.filter(pk=instance.pk).values_list('price', flat=True).first()
    if old_price is not None and old_price != instance.price:
        logger.info(
            f"Preço alterado: {sender.__name__} {instance.pk} ({instance.name}) "
            f"{old_price} -> {instance.price}"
        )

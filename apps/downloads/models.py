from django.conf import settings
from django.db import models


class DownloadLog(models.Model):
    """One row per signed download link handed to a customer."""
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='download_logs',
        verbose_name='Usuário'
    )
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.CASCADE,
        related_name='download_logs',
        verbose_name='Pedido'
    )
    order_item = models.ForeignKey(
        'orders.OrderItem',
        on_delete=models.CASCADE,
        related_name='download_logs',
        verbose_name='Item'
    )
    file = models.ForeignKey(
        'catalog.DigitalFile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='download_logs',
        verbose_name='Arquivo'
    )
    ip = models.GenericIPAddressField(
        null=True,
        blank=True,
        verbose_name='IP'
    )
    user_agent = models.TextField(
        blank=True,
        verbose_name='User agent'
    )
    downloaded_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name='Baixado em'
    )

    class Meta:
        ordering = ['-downloaded_at']
        verbose_name = 'Download'
        verbose_name_plural = 'Downloads'

    def __str__(self):
        return f"{self.order_item_id} @ {self.downloaded_at:%d/%m/%Y %H:%M}"

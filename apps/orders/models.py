import uuid

from django.conf import settings
from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = 'pending', 'Pendente'
    PROCESSING = 'processing', 'Processando'
    COMPLETED = 'completed', 'Concluído'
    CANCELLED = 'cancelled', 'Cancelado'
    REFUNDED = 'refunded', 'Reembolsado'


class PaymentProvider(models.TextChoices):
    STRIPE = 'stripe', 'Stripe'
    PIX = 'pix', 'Pix'
    MERCADO_PAGO = 'mercado_pago', 'Mercado Pago'


class Order(models.Model):
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
        verbose_name='Cliente'
    )
    email = models.EmailField(verbose_name='E-mail')
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
        verbose_name='Status'
    )
    subtotal = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        verbose_name='Subtotal'
    )
    discount_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        verbose_name='Desconto'
    )
    total = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        verbose_name='Total'
    )
    currency = models.CharField(
        max_length=3,
        default='BRL',
        verbose_name='Moeda'
    )
    payment_provider = models.CharField(
        max_length=20,
        choices=PaymentProvider.choices,
        verbose_name='Provedor de pagamento'
    )
    payment_id = models.CharField(
        max_length=255,
        blank=True,
        db_index=True,
        verbose_name='ID do pagamento'
    )
    stripe_payment_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        verbose_name='Stripe PaymentIntent'
    )
    payment_status = models.CharField(
        max_length=30,
        blank=True,
        default='pending',
        verbose_name='Status do pagamento'
    )
    coupon = models.ForeignKey(
        'coupons.Coupon',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
        verbose_name='Cupom'
    )
    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Pago em'
    )
    confirmation_sent_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Confirmação enviada em'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Pedido'
        verbose_name_plural = 'Pedidos'

    def __str__(self):
        return f"#{str(self.id)[:8]} - {self.email}"

    @property
    def short_id(self):
        return str(self.id)[:8]

    @property
    def is_paid(self):
        return (
            self.status == OrderStatus.COMPLETED
            or self.payment_status in ('succeeded', 'paid', 'approved')
        )


class OrderItem(models.Model):
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name='Pedido'
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items',
        verbose_name='Produto'
    )
    variation = models.ForeignKey(
        'catalog.ProductVariation',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items',
        verbose_name='Variação'
    )
    name = models.CharField(
        max_length=255,
        verbose_name='Nome'
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        verbose_name='Preço unitário'
    )
    quantity = models.PositiveIntegerField(
        default=1,
        verbose_name='Quantidade'
    )
    total = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        verbose_name='Total'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']
        verbose_name = 'Item do Pedido'
        verbose_name_plural = 'Itens do Pedido'

    def __str__(self):
        return f"{self.name} x{self.quantity}"

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Coupon(models.Model):
    TYPE_PERCENT = 'percent'
    TYPE_FIXED = 'fixed'
    TYPE_CHOICES = [
        (TYPE_PERCENT, 'Percentual'),
        (TYPE_FIXED, 'Valor fixo'),
    ]

    APPLIES_ALL = 'all'
    APPLIES_PRODUCTS = 'products'
    APPLIES_VARIATIONS = 'variations'
    APPLIES_CHOICES = [
        (APPLIES_ALL, 'Todos os produtos'),
        (APPLIES_PRODUCTS, 'Produtos específicos'),
        (APPLIES_VARIATIONS, 'Variações específicas'),
    ]

    code = models.CharField(
        max_length=50,
        unique=True,
        verbose_name='Código'
    )
    type = models.CharField(
        max_length=10,
        choices=TYPE_CHOICES,
        default=TYPE_PERCENT,
        verbose_name='Tipo'
    )
    value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        verbose_name='Valor'
    )
    min_subtotal = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name='Subtotal mínimo'
    )
    max_uses = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name='Usos máximos'
    )
    max_uses_per_user = models.PositiveIntegerField(
        default=1,
        verbose_name='Usos por cliente'
    )
    used_count = models.PositiveIntegerField(
        default=0,
        verbose_name='Vezes usado'
    )
    applies_to = models.CharField(
        max_length=20,
        choices=APPLIES_CHOICES,
        default=APPLIES_ALL,
        verbose_name='Aplica-se a'
    )
    stackable = models.BooleanField(
        default=False,
        verbose_name='Cumulativo'
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name='Ativo'
    )
    starts_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Início'
    )
    ends_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Fim'
    )
    products = models.ManyToManyField(
        'catalog.Product',
        blank=True,
        related_name='coupons',
        verbose_name='Produtos'
    )
    variations = models.ManyToManyField(
        'catalog.ProductVariation',
        blank=True,
        related_name='coupons',
        verbose_name='Variações'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name='Criado por'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Cupom'
        verbose_name_plural = 'Cupons'

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)


class CouponRedemption(models.Model):
    coupon = models.ForeignKey(
        Coupon,
        on_delete=models.CASCADE,
        related_name='redemptions',
        verbose_name='Cupom'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='coupon_redemptions',
        verbose_name='Usuário'
    )
    order = models.OneToOneField(
        'orders.Order',
        on_delete=models.CASCADE,
        related_name='coupon_redemption',
        verbose_name='Pedido'
    )
    amount_discounted = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        verbose_name='Desconto'
    )
    used_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name='Usado em'
    )

    class Meta:
        ordering = ['-used_at']
        verbose_name = 'Uso de Cupom'
        verbose_name_plural = 'Usos de Cupons'

    def __str__(self):
        return f"{self.coupon.code} - {self.order_id}"

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from simple_history.models import HistoricalRecords

from apps.core.text import slugify_pt


class ProductVariation(models.Model):
    """
    Purchasable SKU under a product with its own price, attribute-value
    combination, files and images.
    """
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.CASCADE,
        related_name='variations',
        verbose_name='Produto'
    )
    name = models.CharField(
        max_length=255,
        verbose_name='Nome'
    )
    slug = models.SlugField(
        max_length=255,
        verbose_name='Slug'
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        verbose_name='Preço'
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name='Ativo'
    )
    sort_order = models.PositiveIntegerField(
        default=0,
        verbose_name='Ordem de exibição'
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name='Criado em'
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Atualizado em'
    )

    attribute_values = models.ManyToManyField(
        'catalog.AttributeValue',
        through='VariationAttributeValue',
        related_name='variations',
        verbose_name='Valores de atributos'
    )

    history = HistoricalRecords()

    class Meta:
        ordering = ['sort_order', 'id']
        verbose_name = 'Variação'
        verbose_name_plural = 'Variações'

    def __str__(self):
        return f"{self.product.name} - {self.name}"

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify_pt(self.name)[:255] or 'variacao'
        super().save(*args, **kwargs)

    def get_values_dict(self):
        """Return dict of {attribute_slug: value_slug}"""
        return {
            vav.attribute.slug: vav.value.slug
            for vav in self.variation_values.select_related('attribute', 'value')
        }

    @property
    def main_image(self):
        return self.images.filter(is_main=True).first() or self.images.first()


class VariationAttributeValue(models.Model):
    """
    Links a variation to one value of an attribute.
    A variation holds at most one value per attribute.
    """
    variation = models.ForeignKey(
        ProductVariation,
        on_delete=models.CASCADE,
        related_name='variation_values',
        verbose_name='Variação'
    )
    attribute = models.ForeignKey(
        'catalog.Attribute',
        on_delete=models.CASCADE,
        verbose_name='Atributo'
    )
    value = models.ForeignKey(
        'catalog.AttributeValue',
        on_delete=models.CASCADE,
        verbose_name='Valor'
    )

    class Meta:
        unique_together = ['variation', 'attribute']
        verbose_name = 'Valor de Atributo da Variação'
        verbose_name_plural = 'Valores de Atributos da Variação'

    def __str__(self):
        return f"{self.variation.name} - {self.value}"

    def clean(self):
        if self.value_id and self.attribute_id and self.value.attribute_id != self.attribute_id:
            raise ValidationError('O valor não pertence ao atributo informado.')

    def save(self, *args, **kwargs):
        if not self.attribute_id and self.value_id:
            self.attribute_id = self.value.attribute_id
        self.clean()
        super().save(*args, **kwargs)

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from simple_history.models import HistoricalRecords

from apps.core.text import unique_slugify


class Product(models.Model):
    """
    A digital product (usually a PDF). It may be sold directly at its own
    price or through variations, each with its own price and files.
    """
    name = models.CharField(
        max_length=255,
        verbose_name='Nome'
    )
    slug = models.SlugField(
        max_length=255,
        unique=True,
        verbose_name='Slug'
    )
    description = models.TextField(
        blank=True,
        verbose_name='Descrição'
    )
    short_description = models.TextField(
        blank=True,
        verbose_name='Descrição curta'
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        verbose_name='Preço'
    )
    category = models.ForeignKey(
        'catalog.Category',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='products',
        verbose_name='Categoria'
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name='Ativo'
    )
    is_featured = models.BooleanField(
        default=False,
        verbose_name='Destaque'
    )
    seo_title = models.CharField(
        max_length=255,
        blank=True,
        verbose_name='Título SEO'
    )
    seo_description = models.TextField(
        blank=True,
        verbose_name='Descrição SEO'
    )
    attributes = models.ManyToManyField(
        'catalog.Attribute',
        through='ProductAttribute',
        related_name='products',
        blank=True,
        verbose_name='Atributos'
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name='Criado em'
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Atualizado em'
    )

    history = HistoricalRecords()

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Produto'
        verbose_name_plural = 'Produtos'

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slugify(Product, self.name, exclude_pk=self.pk)
        if not self.seo_title:
            self.seo_title = self.name[:255]
        if not self.seo_description:
            self.seo_description = self.description
        super().save(*args, **kwargs)

    @property
    def variation_count(self):
        return self.variations.count()

    @property
    def main_image(self):
        return self.images.filter(is_main=True).first() or self.images.first()

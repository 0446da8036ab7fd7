from django.core.exceptions import ValidationError
from django.db import models


def validate_single_owner(instance):
    """Images and files belong to a product or to one of its variations, never both."""
    if bool(instance.product_id) == bool(instance.variation_id):
        raise ValidationError('Informe o produto ou a variação (apenas um).')


class ProductImage(models.Model):
    """Product or variation photo hosted on Cloudinary."""
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='images',
        verbose_name='Produto'
    )
    variation = models.ForeignKey(
        'catalog.ProductVariation',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='images',
        verbose_name='Variação'
    )
    public_id = models.CharField(
        max_length=255,
        blank=True,
        verbose_name='Cloudinary public_id'
    )
    url = models.URLField(
        max_length=500,
        verbose_name='URL'
    )
    alt = models.CharField(
        max_length=255,
        blank=True,
        verbose_name='Texto alternativo'
    )
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    format = models.CharField(max_length=20, blank=True)
    bytes = models.PositiveIntegerField(null=True, blank=True)
    sort_order = models.PositiveIntegerField(
        default=0,
        verbose_name='Ordem de exibição'
    )
    is_main = models.BooleanField(
        default=False,
        verbose_name='Imagem principal'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-is_main', 'sort_order', 'id']
        verbose_name = 'Imagem'
        verbose_name_plural = 'Imagens'

    def __str__(self):
        return self.alt or self.public_id or self.url

    def clean(self):
        validate_single_owner(self)

    def save(self, *args, **kwargs):
        self.clean()
        # Ensure only one main image per owner
        if self.is_main:
            siblings = ProductImage.objects.filter(is_main=True)
            if self.variation_id:
                siblings = siblings.filter(variation_id=self.variation_id)
            else:
                siblings = siblings.filter(product_id=self.product_id)
            siblings.exclude(pk=self.pk).update(is_main=False)

        if not self.alt:
            owner = self.variation if self.variation_id else self.product
            self.alt = str(owner)[:255]

        super().save(*args, **kwargs)


class DigitalFile(models.Model):
    """Downloadable file (PDF) stored privately on Cloudflare R2."""
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='files',
        verbose_name='Produto'
    )
    variation = models.ForeignKey(
        'catalog.ProductVariation',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='files',
        verbose_name='Variação'
    )
    name = models.CharField(
        max_length=255,
        verbose_name='Nome'
    )
    original_name = models.CharField(
        max_length=255,
        verbose_name='Nome original'
    )
    mime_type = models.CharField(
        max_length=100,
        default='application/pdf',
        verbose_name='Tipo'
    )
    size = models.PositiveBigIntegerField(
        default=0,
        verbose_name='Tamanho (bytes)'
    )
    path = models.CharField(
        max_length=500,
        verbose_name='Chave no R2'
    )
    hash = models.CharField(
        max_length=64,
        blank=True,
        verbose_name='SHA-256'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']
        verbose_name = 'Arquivo'
        verbose_name_plural = 'Arquivos'

    def __str__(self):
        return self.original_name or self.name

    def clean(self):
        validate_single_owner(self)

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)

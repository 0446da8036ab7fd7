from django.db import models

from apps.core.text import slugify_pt, unique_slugify


class Attribute(models.Model):
    """
    Named dimension used to tell variations apart.
    Examples: Formato (A4, A5), Idioma (Português, Espanhol).
    """
    name = models.CharField(
        max_length=100,
        verbose_name='Nome'
    )
    slug = models.SlugField(
        max_length=100,
        unique=True,
        verbose_name='Slug'
    )
    sort_order = models.PositiveIntegerField(
        default=0,
        verbose_name='Ordem de exibição'
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name='Ativo'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['sort_order', 'name']
        verbose_name = 'Atributo'
        verbose_name_plural = 'Atributos'

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slugify(Attribute, self.name, exclude_pk=self.pk, max_length=100)
        super().save(*args, **kwargs)


class AttributeValue(models.Model):
    """An enumerated option of an attribute (e.g. Formato: A4)."""
    attribute = models.ForeignKey(
        Attribute,
        on_delete=models.CASCADE,
        related_name='values',
        verbose_name='Atributo'
    )
    value = models.CharField(
        max_length=100,
        verbose_name='Valor'
    )
    slug = models.SlugField(
        max_length=100,
        verbose_name='Slug'
    )
    sort_order = models.PositiveIntegerField(
        default=0,
        verbose_name='Ordem de exibição'
    )
    is_default = models.BooleanField(
        default=False,
        verbose_name='Padrão'
    )

    class Meta:
        ordering = ['sort_order', 'value']
        unique_together = ['attribute', 'slug']
        verbose_name = 'Valor de Atributo'
        verbose_name_plural = 'Valores de Atributos'

    def __str__(self):
        return f"{self.attribute.name}: {self.value}"

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify_pt(self.value)[:100] or 'valor'
        super().save(*args, **kwargs)


class ProductAttribute(models.Model):
    """Attributes a product offers across its variations."""
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.CASCADE,
        related_name='product_attributes',
        verbose_name='Produto'
    )
    attribute = models.ForeignKey(
        Attribute,
        on_delete=models.CASCADE,
        verbose_name='Atributo'
    )

    class Meta:
        unique_together = ['product', 'attribute']
        verbose_name = 'Atributo do Produto'
        verbose_name_plural = 'Atributos do Produto'

    def __str__(self):
        return f"{self.product.name} - {self.attribute.name}"

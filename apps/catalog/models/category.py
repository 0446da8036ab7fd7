from django.core.exceptions import ValidationError
from django.db import models

from apps.core.text import unique_slugify


class Category(models.Model):
    """
    Store sections, at most nested as section > subsection.
    Examples: Planners > Planners Mensais
    """
    name = models.CharField(
        max_length=200,
        verbose_name='Nome'
    )
    slug = models.SlugField(
        max_length=200,
        unique=True,
        verbose_name='Slug'
    )
    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='children',
        verbose_name='Categoria Pai'
    )
    description = models.TextField(
        blank=True,
        verbose_name='Descrição'
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name='Ativo'
    )
    sort_order = models.PositiveIntegerField(
        default=0,
        verbose_name='Ordem de exibição'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sort_order', 'name']
        verbose_name = 'Categoria'
        verbose_name_plural = 'Categorias'

    def __str__(self):
        return self.full_path

    @property
    def full_path(self):
        """'Planners > Planners Mensais'"""
        return ' > '.join([c.name for c in self.get_ancestors()] + [self.name])

    def get_ancestors(self):
        """Root first, immediate parent last. Stops on a parent loop."""
        chain = []
        seen = {self.pk}
        current = self.parent
        while current is not None and current.pk not in seen:
            seen.add(current.pk)
            chain.append(current)
            current = current.parent
        chain.reverse()
        return chain

    def clean(self):
        if not self.pk:
            return
        current = self.parent
        while current is not None:
            if current.pk == self.pk:
                raise ValidationError({'parent': 'Hierarquia circular de categorias.'})
            current = current.parent

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slugify(Category, self.name, exclude_pk=self.pk, max_length=200)
        super().save(*args, **kwargs)

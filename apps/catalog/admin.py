from django.contrib import admin
from django.utils.html import format_html
from import_export import resources, fields
from import_export.admin import ImportExportModelAdmin
from import_export.widgets import ForeignKeyWidget
from adminsortable2.admin import SortableAdminMixin, SortableAdminBase, SortableInlineAdminMixin
from simple_history.admin import SimpleHistoryAdmin

from .models import (
    Category,
    Product,
    Attribute,
    AttributeValue,
    ProductAttribute,
    ProductVariation,
    VariationAttributeValue,
    ProductImage,
    DigitalFile,
)


# =============================================================================
# Import/Export Resources
# =============================================================================

class ProductResource(resources.ModelResource):
    """Resource for importing/exporting products."""

    category_slug = fields.Field(
        column_name='category',
        attribute='category',
        widget=ForeignKeyWidget(Category, 'slug')
    )

    class Meta:
        model = Product
        import_id_fields = ['slug']
        fields = (
            'slug', 'name', 'category_slug', 'price', 'short_description',
            'description', 'is_active', 'is_featured', 'seo_title', 'seo_description'
        )
        export_order = fields


class ProductVariationResource(resources.ModelResource):
    """Resource for importing/exporting variations (identified by product + slug)."""

    product_slug = fields.Field(
        column_name='product',
        attribute='product',
        widget=ForeignKeyWidget(Product, 'slug')
    )

    class Meta:
        model = ProductVariation
        import_id_fields = ['product_slug', 'slug']
        fields = ('product_slug', 'slug', 'name', 'price', 'is_active', 'sort_order')
        export_order = fields


# =============================================================================
# Inlines
# =============================================================================

class AttributeValueInline(SortableInlineAdminMixin, admin.TabularInline):
    model = AttributeValue
    extra = 1
    fields = ['value', 'slug', 'is_default', 'sort_order']


class ProductAttributeInline(admin.TabularInline):
    model = ProductAttribute
    extra = 1
    autocomplete_fields = ['attribute']


class VariationAttributeValueInline(admin.TabularInline):
    model = VariationAttributeValue
    extra = 1
    autocomplete_fields = ['attribute', 'value']


def image_preview(obj):
    if obj.url:
        return format_html(
            '<img src="{}" style="max-height: 50px; max-width: 100px;" />',
            obj.url
        )
    return '-'


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    fk_name = 'product'
    extra = 0
    fields = ['url', 'public_id', 'alt', 'is_main', 'sort_order', 'preview']
    readonly_fields = ['preview']

    def preview(self, obj):
        return image_preview(obj)
    preview.short_description = 'Preview'


class VariationImageInline(ProductImageInline):
    fk_name = 'variation'


class DigitalFileInline(admin.TabularInline):
    model = DigitalFile
    fk_name = 'product'
    extra = 0
    fields = ['name', 'original_name', 'path', 'size', 'mime_type']
    readonly_fields = ['size', 'mime_type']


class VariationFileInline(DigitalFileInline):
    fk_name = 'variation'


class ProductVariationInline(SortableInlineAdminMixin, admin.TabularInline):
    model = ProductVariation
    extra = 0
    fields = ['name', 'slug', 'price', 'is_active', 'sort_order']
    show_change_link = True


# =============================================================================
# Model Admins
# =============================================================================

@admin.register(Category)
class CategoryAdmin(SortableAdminMixin, admin.ModelAdmin):
    list_display = ['name', 'slug', 'parent', 'is_active', 'sort_order']
    list_filter = ['is_active', 'parent']
    search_fields = ['name', 'slug']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(Product)
class ProductAdmin(SortableAdminBase, ImportExportModelAdmin, SimpleHistoryAdmin):
    resource_class = ProductResource
    list_display = [
        'name', 'slug', 'category', 'price', 'variation_count',
        'is_active', 'is_featured', 'main_image_preview', 'created_at'
    ]
    list_filter = ['is_active', 'is_featured', 'category', 'created_at']
    list_editable = ['price', 'is_active', 'is_featured']
    search_fields = ['name', 'slug', 'description']
    prepopulated_fields = {'slug': ('name',)}
    autocomplete_fields = ['category']
    readonly_fields = ['variation_count', 'created_at', 'updated_at']
    inlines = [ProductAttributeInline, ProductVariationInline, ProductImageInline, DigitalFileInline]
    list_per_page = 50

    fieldsets = (
        (None, {
            'fields': ('name', 'slug', 'category', 'price', 'is_active', 'is_featured')
        }),
        ('Descrição', {
            'fields': ('short_description', 'description')
        }),
        ('SEO', {
            'fields': ('seo_title', 'seo_description'),
            'classes': ('collapse',)
        }),
        ('Informações', {
            'fields': ('variation_count', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    actions = ['activate_products', 'deactivate_products', 'feature_products']

    def main_image_preview(self, obj):
        img = obj.main_image
        return image_preview(img) if img else '-'
    main_image_preview.short_description = 'Imagem'

    @admin.action(description='Ativar produtos selecionados')
    def activate_products(self, request, queryset):
        count = queryset.update(is_active=True)
        self.message_user(request, f'{count} produtos ativados.')

    @admin.action(description='Desativar produtos selecionados')
    def deactivate_products(self, request, queryset):
        count = queryset.update(is_active=False)
        self.message_user(request, f'{count} produtos desativados.')

    @admin.action(description='Marcar como destaque')
    def feature_products(self, request, queryset):
        count = queryset.update(is_featured=True)
        self.message_user(request, f'{count} produtos em destaque.')


@admin.register(Attribute)
class AttributeAdmin(SortableAdminMixin, admin.ModelAdmin):
    list_display = ['name', 'slug', 'value_count', 'is_active', 'sort_order']
    search_fields = ['name', 'slug']
    prepopulated_fields = {'slug': ('name',)}
    inlines = [AttributeValueInline]

    def value_count(self, obj):
        return obj.values.count()
    value_count.short_description = 'Valores'


@admin.register(AttributeValue)
class AttributeValueAdmin(admin.ModelAdmin):
    list_display = ['value', 'slug', 'attribute', 'is_default', 'sort_order']
    list_filter = ['attribute']
    search_fields = ['value', 'slug', 'attribute__name']
    autocomplete_fields = ['attribute']


@admin.register(ProductVariation)
class ProductVariationAdmin(ImportExportModelAdmin, SimpleHistoryAdmin):
    resource_class = ProductVariationResource
    list_display = ['name', 'product', 'price', 'is_active', 'file_count', 'sort_order']
    list_filter = ['is_active', 'product']
    list_editable = ['price', 'is_active']
    search_fields = ['name', 'slug', 'product__name']
    autocomplete_fields = ['product']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [VariationAttributeValueInline, VariationImageInline, VariationFileInline]
    list_per_page = 50

    def file_count(self, obj):
        return obj.files.count()
    file_count.short_description = 'Arquivos'


@admin.register(DigitalFile)
class DigitalFileAdmin(admin.ModelAdmin):
    list_display = ['original_name', 'product', 'variation', 'size', 'created_at']
    search_fields = ['name', 'original_name', 'path']
    raw_id_fields = ['product', 'variation']
    readonly_fields = ['hash', 'created_at']


# =============================================================================
# Admin Site Configuration
# =============================================================================

admin.site.site_header = 'A Rafa Criou - Admin'
admin.site.site_title = 'A Rafa Criou'
admin.site.index_title = 'Painel de Administração'

from .variation_navigation import VariationNavigationService
from .catalog import CatalogService
from .product_admin import ProductAdminService

__all__ = [
    'VariationNavigationService',
    'CatalogService',
    'ProductAdminService',
]

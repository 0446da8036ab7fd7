"""
Catalog models for a digital-goods store.

Model Hierarchy:
- Category: Hierarchical categories
- Product: Base product (e.g., "Planner 2025")
- ProductVariation: Purchasable SKU with its own price, files and images
- Attribute / AttributeValue: Dimensions and their options (Formato: A4)
- ProductAttribute: Attributes offered by a product
- VariationAttributeValue: The value a variation holds for each attribute
- ProductImage: Cloudinary-hosted photos
- DigitalFile: PDF stored on R2
"""

from .category import Category
from .product import Product
from .attribute import Attribute, AttributeValue, ProductAttribute
from .variation import ProductVariation, VariationAttributeValue
from .media import ProductImage, DigitalFile

__all__ = [
    'Category',
    'Product',
    'Attribute',
    'AttributeValue',
    'ProductAttribute',
    'ProductVariation',
    'VariationAttributeValue',
    'ProductImage',
    'DigitalFile',
]

from catalog.schemas.category import CategoryOption, CategoryName
from catalog.schemas.product import (
    Product, ProductCreate, ProductChanges, ProductUpdate, ProductSave, ProductUpdateSave,
    ProductPage, ProductListing,
)
from catalog.schemas.filters import ProductFilter, FilterOption, FilterOptions

__all__ = [
    "CategoryOption", "CategoryName",
    "Product", "ProductCreate", "ProductChanges", "ProductUpdate",
    "ProductSave", "ProductUpdateSave", "ProductPage", "ProductListing",
    "ProductFilter", "FilterOption", "FilterOptions",
]

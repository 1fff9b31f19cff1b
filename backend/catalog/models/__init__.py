from catalog.models.brand import Brand
from catalog.models.category import Category
from catalog.models.product import Product
from catalog.models.product_category import ProductCategory
from catalog.models.review import Review
from catalog.models.comment import Comment

__all__ = [
    "Brand",
    "Category",
    "Product",
    "ProductCategory",
    "Review",
    "Comment",
]

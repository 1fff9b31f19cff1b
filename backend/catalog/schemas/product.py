from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Literal

from catalog.schemas.category import CategoryOption

Gender = Literal["men", "women", "boy", "girl"]


class ProductBase(BaseModel):
    name: str
    description: str | None = None
    image_url: str | None = None
    price: Decimal
    old_price: Decimal | None = None
    discount: int = Field(0, ge=0, le=100)
    gender: Gender | None = None
    occasion: str | None = None  # Comma-delimited occasion names
    brands: str | None = None  # Comma-delimited brand ids
    colors: str | None = None
    rating: float = 0


class ProductCreate(ProductBase):
    pass


class ProductChanges(BaseModel):
    """Partial product fields; only fields that were set are written."""
    name: str | None = None
    description: str | None = None
    image_url: str | None = None
    price: Decimal | None = None
    old_price: Decimal | None = None
    discount: int | None = Field(None, ge=0, le=100)
    gender: Gender | None = None
    occasion: str | None = None
    brands: str | None = None
    colors: str | None = None
    rating: float | None = None


class ProductUpdate(ProductChanges):
    id: int


class Product(ProductBase):
    id: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ProductSave(BaseModel):
    """Request body for creating a product with its categories."""
    product: ProductCreate
    categories: list[CategoryOption] = []


class ProductUpdateSave(BaseModel):
    """Request body for updating a product; fields left out keep their stored values."""
    product: ProductChanges
    categories: list[CategoryOption] = []


class ProductPage(BaseModel):
    products: list[Product]
    count: int
    last_page: int
    num_of_results_on_cur_page: int


class ProductListing(ProductPage):
    """Listing page plus the category names of every product on it."""
    categories: dict[int, list[str]] = {}
    page: int
    page_size: int

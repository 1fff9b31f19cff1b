from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Literal


class ProductFilter(BaseModel):
    """
    Filter bag for the product listing.

    Field aliases match the listing route's query parameter names, so a
    filter can be built straight from the URL. Repeatable parameters accept
    a single scalar as well as a list.
    """
    brand_id: list[int] | None = Field(None, alias="brandId")
    category_id: list[int] | None = Field(None, alias="categoryId")
    price_range_to: Decimal | None = Field(None, alias="priceRangeTo")
    gender: Literal["", "men", "women", "boy", "girl"] | None = None
    occasions: list[str] | None = None
    discount: str | None = None  # "lo-hi", e.g. "6-10"

    class Config:
        populate_by_name = True

    @field_validator("brand_id", "category_id", "occasions", mode="before")
    @classmethod
    def _as_list(cls, value):
        if value is None:
            return value
        values = list(value) if isinstance(value, (list, tuple, set)) else [value]
        # A bare "?occasions=" arrives as [""]
        return [item for item in values if item != ""]

    @field_validator("brand_id", "category_id", "occasions")
    @classmethod
    def _empty_as_none(cls, value):
        return value or None


class FilterOption(BaseModel):
    value: int | str
    label: str


class FilterOptions(BaseModel):
    """Everything the filter panel needs to render its controls."""
    brands: list[FilterOption]
    categories: list[FilterOption]
    occasions: list[FilterOption]
    discounts: list[FilterOption]
    genders: list[str]
    price_min: int
    price_max: int
    price_step: int

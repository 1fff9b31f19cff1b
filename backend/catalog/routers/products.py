from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from decimal import Decimal
from typing import Literal, Optional
import logging

from catalog.config import get_settings
from catalog.database import get_db
from catalog.exceptions import CatalogError, ProductNotFoundError
from catalog.schemas import (
    CategoryName,
    Product as ProductSchema,
    ProductFilter,
    ProductListing,
    ProductSave,
    ProductUpdate,
    ProductUpdateSave,
)
from catalog.services import product_actions
from catalog.services.cache import cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/", response_model=ProductListing)
async def list_products(
    sortBy: Optional[str] = Query(None, description="Sort as <field>-<asc|desc>, e.g. price-desc"),
    page: int = Query(1, ge=1),
    pageSize: Optional[int] = Query(None, ge=1),
    brandId: Optional[list[int]] = Query(None),
    categoryId: Optional[list[int]] = Query(None),
    priceRangeTo: Optional[Decimal] = Query(None, ge=0),
    gender: Optional[Literal["", "men", "women", "boy", "girl"]] = Query(None),
    occasions: Optional[list[str]] = Query(None),
    discount: Optional[str] = Query(None, description="Discount range as <lo>-<hi>, e.g. 6-10"),
    db: Session = Depends(get_db)
):
    """
    Get one page of the product listing, filtered by the panel's URL parameters.

    Each product's category names come back alongside the page so the
    listing can be rendered without further requests.
    """
    settings = get_settings()
    page_size = min(pageSize or settings.default_page_size, settings.max_page_size)

    # Try cache first
    cache_params = {
        "sortBy": sortBy, "page": page, "pageSize": page_size,
        "brandId": brandId, "categoryId": categoryId, "priceRangeTo": priceRangeTo,
        "gender": gender, "occasions": occasions, "discount": discount,
    }
    cached_result = await cache.get_listing(cache_params)
    if cached_result:
        return ProductListing(**cached_result)

    filters = ProductFilter(
        brandId=brandId,
        categoryId=categoryId,
        priceRangeTo=priceRangeTo,
        gender=gender,
        occasions=occasions,
        discount=discount,
    )

    try:
        result = product_actions.get_products(db, sortBy, page, page_size, filters)
    except CatalogError as e:
        logger.warning(f"Rejected listing request: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    categories = product_actions.get_all_product_categories(db, result.products)
    listing = ProductListing(
        **result.model_dump(),
        categories={
            product_id: [category["name"] for category in rows]
            for product_id, rows in categories.items()
        },
        page=page,
        page_size=page_size,
    )

    await cache.set_listing(cache_params, listing.model_dump(mode="json"))
    return listing


@router.get("/{product_id}", response_model=ProductSchema)
def get_product(product_id: int, db: Session = Depends(get_db)):
    """Get a specific product by ID."""
    result = product_actions.get_product(db, product_id)
    if isinstance(result, dict):
        raise HTTPException(status_code=500, detail=result["error"])
    if not result:
        raise HTTPException(status_code=404, detail="Product not found")
    return result[0]


@router.get("/{product_id}/categories", response_model=list[CategoryName])
def get_product_categories(product_id: int, db: Session = Depends(get_db)):
    """Get the categories a product belongs to."""
    return product_actions.get_product_categories(db, product_id)


@router.post("/", response_model=ProductSchema, status_code=201)
async def create_product(payload: ProductSave, db: Session = Depends(get_db)):
    """Create a new product with its categories."""
    return await product_actions.save_products(db, payload.product, payload.categories)


@router.put("/{product_id}", response_model=ProductSchema)
async def update_product(product_id: int, payload: ProductUpdateSave, db: Session = Depends(get_db)):
    """Update a product and reconcile its categories with the submitted selection."""
    product = ProductUpdate(id=product_id, **payload.product.model_dump(exclude_unset=True))
    try:
        return await product_actions.update_product(db, product, payload.categories)
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")


@router.delete("/{product_id}")
async def delete_product(product_id: int, db: Session = Depends(get_db)):
    """Delete a product together with its category links, reviews and comments."""
    result = await product_actions.delete_product(db, product_id)
    if "error" in result:
        raise HTTPException(status_code=500, detail=result["error"])
    return result

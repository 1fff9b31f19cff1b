"""Lookups that feed the product filter panel."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from catalog.database import get_db
from catalog.schemas import FilterOptions
from catalog.services import product_actions
from catalog.services.cache import cache
from catalog.services.filter_state import build_filter_options

router = APIRouter(tags=["filters"])


@router.get("/filters", response_model=FilterOptions)
async def get_filter_options(db: Session = Depends(get_db)):
    """Get the brand, category, occasion and discount choices for the filter panel."""
    cached_result = await cache.get_filters()
    if cached_result:
        return FilterOptions(**cached_result)

    options = build_filter_options(
        product_actions.list_brands(db),
        product_actions.list_categories(db),
    )
    await cache.set_filters(options.model_dump(mode="json"))
    return options


@router.get("/brands/names")
def get_brand_names(ids: list[int] = Query(...), db: Session = Depends(get_db)):
    """Map brand ids (as used in the brandId filter) to brand names."""
    names = product_actions.map_brand_ids_to_name(db, ids)
    return {str(brand_id): name for brand_id, name in names.items()}

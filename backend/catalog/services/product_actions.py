"""
Product Actions

Data-access functions behind the storefront pages:
- Product create/update/delete, including category association upkeep
- Filtered, sorted and paginated product listing
- Brand and category lookups used to decorate listings

Read functions propagate database errors to the caller. get_product and
delete_product are the exceptions: they report failures as {"error": ...}
payloads so the pages can render a message instead of an error page.
"""
import logging
import math
import re
from contextlib import nullcontext
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel
from sqlalchemy import distinct, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from catalog.config import get_settings
from catalog.constants import DEFAULT_PAGE_SIZE
from catalog.database import foreign_key_checks_disabled
from catalog.exceptions import InvalidDiscountRangeError, InvalidSortError, ProductNotFoundError
from catalog.models import Brand, Category, Comment, Product, ProductCategory, Review
from catalog.schemas import CategoryOption, ProductFilter, ProductPage
from catalog.schemas import Product as ProductSchema
from catalog.services.cache import cache

logger = logging.getLogger(__name__)

DELETE_FAILED_MESSAGE = "Something went wrong, Cannot delete the product"
PRODUCT_NOT_FOUND_MESSAGE = "Could not find the product"

SORT_DIRECTIONS = ("asc", "desc")

# Key under Session.info holding get_product results for the current request
_PRODUCT_MEMO_KEY = "catalog.product_memo"


# --- Pure helpers -----------------------------------------------------------

def diff_category_ids(
    desired: Iterable[int],
    current: Iterable[int]
) -> tuple[list[int], list[int]]:
    """
    Compare the selected category ids with the stored ones.

    Returns (to_insert, to_delete): ids selected but not stored, and ids
    stored but no longer selected. Duplicates collapse and input order is
    kept, so unchanged associations are left alone.
    """
    desired_ids = list(dict.fromkeys(desired))
    current_ids = list(dict.fromkeys(current))
    desired_set = set(desired_ids)
    current_set = set(current_ids)

    to_insert = [category_id for category_id in desired_ids if category_id not in current_set]
    to_delete = [category_id for category_id in current_ids if category_id not in desired_set]
    return to_insert, to_delete


def compute_last_page(count: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return math.ceil(count / page_size)


def parse_sort(sort_by: str) -> tuple[str, str]:
    """Split "field-direction" on the first dash, e.g. "price-desc" -> ("price", "desc")."""
    field, _, direction = sort_by.partition("-")
    direction = (direction or "asc").lower()
    if field not in Product.__table__.columns or direction not in SORT_DIRECTIONS:
        raise InvalidSortError(sort_by)
    return field, direction


def parse_discount_range(discount: str) -> tuple[int, int]:
    """Parse a "lo-hi" discount range such as "6-10" into (6, 10)."""
    parts = discount.split("-")
    if len(parts) != 2:
        raise InvalidDiscountRangeError(discount)
    try:
        low, high = int(parts[0]), int(parts[1])
    except ValueError:
        raise InvalidDiscountRangeError(discount) from None
    if low > high:
        raise InvalidDiscountRangeError(discount)
    return low, high


def word_boundary_pattern(values: Iterable[Any], dialect_name: str = "mysql") -> str:
    """
    Build a regex matching any of ``values`` as a whole word.

    Used against the comma-delimited brands/occasion columns, so "1" matches
    "1,14" but not "14". Values are escaped; PostgreSQL spells the word
    boundary \\y instead of \\b.
    """
    boundary = r"\y" if dialect_name == "postgresql" else r"\b"
    alternatives = "|".join(re.escape(str(value)) for value in values)
    return f"{boundary}({alternatives}){boundary}"


def _category_id(category) -> int:
    """Accept a CategoryOption, a {"value": ...} mapping or a bare id."""
    if isinstance(category, CategoryOption):
        return category.value
    if isinstance(category, Mapping):
        return int(category["value"])
    return int(category)


def _product_id(product) -> int:
    if isinstance(product, Mapping):
        return product["id"]
    return product.id


def _as_filter(filters) -> ProductFilter:
    if filters is None:
        return ProductFilter()
    if isinstance(filters, ProductFilter):
        return filters
    return ProductFilter.model_validate(dict(filters))


def _forget_products(db: Session):
    db.info.pop(_PRODUCT_MEMO_KEY, None)


# --- Listing ----------------------------------------------------------------

def apply_product_filters(query: Query, filters: ProductFilter, dialect_name: str) -> Query:
    """AND one predicate onto ``query`` for every filter that is set."""
    if filters.brand_id:
        query = query.filter(
            Product.brands.regexp_match(word_boundary_pattern(filters.brand_id, dialect_name))
        )

    if filters.category_id:
        query = query.join(ProductCategory, ProductCategory.product_id == Product.id).filter(
            ProductCategory.category_id.in_(filters.category_id)
        )

    if filters.price_range_to is not None:
        query = query.filter(Product.price <= filters.price_range_to)

    if filters.gender:
        query = query.filter(Product.gender == filters.gender)

    if filters.occasions:
        query = query.filter(
            Product.occasion.regexp_match(word_boundary_pattern(filters.occasions, dialect_name))
        )

    if filters.discount:
        low, high = parse_discount_range(filters.discount)
        query = query.filter(Product.discount >= low, Product.discount <= high)

    return query


def get_products(
    db: Session,
    sort_by: Optional[str] = None,
    page_no: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    filters=None
) -> ProductPage:
    """
    Get one page of products matching ``filters``.

    ``filters`` is a ProductFilter or a mapping keyed by the listing route's
    query parameter names (brandId, categoryId, priceRangeTo, gender,
    occasions, discount).
    """
    if page_no < 1:
        raise ValueError(f"page_no must be at least 1, got {page_no}")
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    product_filter = _as_filter(filters)
    order_by = []
    if sort_by:
        field, direction = parse_sort(sort_by)
        column = Product.__table__.columns[field]
        order_by.append(column.desc() if direction == "desc" else column.asc())
    # Stable pagination when the sort column has ties
    order_by.append(Product.id.asc())

    dialect_name = db.get_bind().dialect.name
    query = apply_product_filters(db.query(Product), product_filter, dialect_name)

    # The category join can repeat a product once per matching category
    count = query.with_entities(func.count(distinct(Product.id))).scalar() or 0
    last_page = compute_last_page(count, page_size)

    products = (
        query.distinct()
        .order_by(*order_by)
        .offset((page_no - 1) * page_size)
        .limit(page_size)
        .all()
    )

    logger.debug(
        f"Listed {len(products)} of {count} products "
        f"(sort={sort_by}, page={page_no}, page_size={page_size})"
    )

    return ProductPage(
        products=[ProductSchema.model_validate(product) for product in products],
        count=count,
        last_page=last_page,
        num_of_results_on_cur_page=len(products)
    )


# --- Single product ---------------------------------------------------------

def get_product(db: Session, product_id: int):
    """
    Get the rows for ``product_id`` (an empty list when it does not exist).

    Results are memoised on the session, which lives for one request, so a
    page and its components can ask for the same product without repeating
    the query.
    """
    memo = db.info.setdefault(_PRODUCT_MEMO_KEY, {})
    if product_id in memo:
        return memo[product_id]

    try:
        products = db.query(Product).filter(Product.id == product_id).all()
    except SQLAlchemyError as e:
        logger.error(f"Error loading product {product_id}: {e}")
        db.rollback()
        return {"error": PRODUCT_NOT_FOUND_MESSAGE}

    memo[product_id] = products
    return products


async def save_products(db: Session, product, categories) -> Product:
    """Create a product and associate it with the selected categories."""
    data = product.model_dump() if isinstance(product, BaseModel) else dict(product)
    category_ids = list(dict.fromkeys(_category_id(category) for category in categories))

    db_product = Product(**data)
    try:
        db.add(db_product)
        db.flush()  # Assigns db_product.id
        if category_ids:
            db.add_all([
                ProductCategory(product_id=db_product.id, category_id=category_id)
                for category_id in category_ids
            ])
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_product)
    _forget_products(db)
    logger.info(f"Created product {db_product.id} with {len(category_ids)} categories")
    await cache.invalidate_products()
    return db_product


async def update_product(db: Session, product, categories) -> Product:
    """
    Update a product and reconcile its categories with the selection.

    Only the difference is written: associations that are no longer selected
    are deleted and newly selected ones inserted. Unchanged rows keep their
    ids.
    """
    if isinstance(product, BaseModel):
        data = product.model_dump(exclude_unset=True)
    else:
        data = dict(product)
    product_id = data.pop("id")
    desired_ids = [_category_id(category) for category in categories]

    try:
        exists = db.query(Product.id).filter(Product.id == product_id).first()
        if exists is None:
            raise ProductNotFoundError(product_id)

        if data:
            db.query(Product).filter(Product.id == product_id).update(
                data, synchronize_session="fetch"
            )

        current_ids = [
            row.category_id
            for row in db.query(ProductCategory.category_id)
            .filter(ProductCategory.product_id == product_id)
            .all()
        ]
        to_insert, to_delete = diff_category_ids(desired_ids, current_ids)

        if to_delete:
            db.query(ProductCategory).filter(
                ProductCategory.product_id == product_id,
                ProductCategory.category_id.in_(to_delete)
            ).delete(synchronize_session=False)

        if to_insert:
            db.add_all([
                ProductCategory(product_id=product_id, category_id=category_id)
                for category_id in to_insert
            ])

        db.commit()
    except Exception:
        db.rollback()
        raise

    _forget_products(db)
    logger.info(
        f"Updated product {product_id}: "
        f"+{len(to_insert)} / -{len(to_delete)} categories"
    )
    await cache.invalidate_products()
    return db.get(Product, product_id)


def _delete_product_rows(db: Session, product_id: int):
    # Dependents first, then the product itself
    db.query(ProductCategory).filter(
        ProductCategory.product_id == product_id
    ).delete(synchronize_session=False)
    db.query(Review).filter(Review.product_id == product_id).delete(synchronize_session=False)
    db.query(Comment).filter(Comment.product_id == product_id).delete(synchronize_session=False)
    db.query(Product).filter(Product.id == product_id).delete()


async def delete_product(db: Session, product_id: int) -> dict:
    """
    Delete a product along with its category links, reviews and comments.

    Everything runs in one transaction on the session's connection. When
    ``toggle_foreign_key_checks`` is on, FK enforcement is switched off for
    that connection only and switched back on before it is released.
    """
    settings = get_settings()
    fk_guard = (
        foreign_key_checks_disabled(db)
        if settings.toggle_foreign_key_checks
        else nullcontext()
    )

    try:
        with fk_guard:
            _delete_product_rows(db, product_id)
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error deleting product {product_id}: {e}")
        db.rollback()
        return {"error": DELETE_FAILED_MESSAGE}

    _forget_products(db)
    logger.info(f"Deleted product {product_id}")
    await cache.invalidate_products()
    return {"message": "success"}


# --- Brand & category lookups ----------------------------------------------

def map_brand_ids_to_name(db: Session, brand_ids: Iterable) -> dict:
    """
    Map each brand id to its brand name (None for unknown ids).

    Keys are the ids exactly as passed in, so ids taken from the URL can be
    looked up as strings.
    """
    brand_ids = list(brand_ids)
    if not brand_ids:
        return {}

    rows = db.query(Brand.id, Brand.name).filter(
        Brand.id.in_({int(brand_id) for brand_id in brand_ids})
    ).all()
    names = {row.id: row.name for row in rows}
    return {brand_id: names.get(int(brand_id)) for brand_id in brand_ids}


def get_all_product_categories(db: Session, products: Iterable) -> dict[int, list[dict]]:
    """Map each product id to its categories as [{"name": ...}, ...]."""
    product_ids = [_product_id(product) for product in products]
    categories_map: dict[int, list[dict]] = {product_id: [] for product_id in product_ids}
    if not product_ids:
        return categories_map

    rows = (
        db.query(ProductCategory.product_id, Category.name)
        .join(Category, Category.id == ProductCategory.category_id)
        .filter(ProductCategory.product_id.in_(product_ids))
        .order_by(ProductCategory.id)
        .all()
    )
    for row in rows:
        categories_map[row.product_id].append({"name": row.name})
    return categories_map


def get_product_categories(db: Session, product_id: int) -> list[dict]:
    """Get the categories of one product as [{"id": ..., "name": ...}, ...]."""
    rows = (
        db.query(Category.id, Category.name)
        .join(ProductCategory, ProductCategory.category_id == Category.id)
        .filter(ProductCategory.product_id == product_id)
        .order_by(ProductCategory.id)
        .all()
    )
    return [{"id": row.id, "name": row.name} for row in rows]


def list_brands(db: Session) -> list[Brand]:
    return db.query(Brand).order_by(Brand.name).all()


def list_categories(db: Session) -> list[Category]:
    return db.query(Category).order_by(Category.name).all()

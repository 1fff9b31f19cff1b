"""Catalog-wide constants shared by the listing route and the filter panel."""

DEFAULT_PAGE_SIZE = 10

LISTING_PATH = "/products"

# Price slider bounds
PRICE_RANGE_MIN = 100
PRICE_RANGE_MAX = 2000
PRICE_RANGE_STEP = 50

# Seconds to wait after the last slider change before navigating
SLIDER_DEBOUNCE_SECONDS = 0.3

GENDER_OPTIONS = ["", "men", "women", "boy", "girl"]

OCCASION_OPTIONS = [
    "casual",
    "formal",
    "party",
    "sports",
    "wedding",
    "beach",
    "office",
]

DISCOUNT_OPTIONS = [
    {"value": "", "label": "None"},
    {"value": "0-5", "label": "From 0% to 5%"},
    {"value": "6-10", "label": "From 6% to 10%"},
    {"value": "11-15", "label": "From 11% to 15%"},
]

# Query parameter names the filter panel owns
FILTER_PARAMS = ["brandId", "categoryId", "priceRangeTo", "gender", "occasions", "discount"]

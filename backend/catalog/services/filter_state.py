"""
Filter Panel State

Keeps the product filter panel's selections in sync with the listing URL.
Every control writes its value into the query parameters and navigates to
/products?<params>, so the listing can be rendered from the URL alone. The
price slider waits for a pause in changes before navigating, to avoid one
request per drag step.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from starlette.datastructures import MultiDict, QueryParams

from catalog.constants import (
    DISCOUNT_OPTIONS,
    FILTER_PARAMS,
    GENDER_OPTIONS,
    LISTING_PATH,
    OCCASION_OPTIONS,
    PRICE_RANGE_MAX,
    PRICE_RANGE_MIN,
    PRICE_RANGE_STEP,
    SLIDER_DEBOUNCE_SECONDS,
)
from catalog.schemas import FilterOption, FilterOptions

logger = logging.getLogger(__name__)

DEFAULT_SLIDER_VALUE = PRICE_RANGE_MAX
NO_DISCOUNT = DISCOUNT_OPTIONS[0]

Navigate = Callable[..., None]


def _option(item, value_attr: str = "id", label_attr: str = "name") -> dict:
    if isinstance(item, dict):
        return {"value": item[value_attr], "label": item[label_attr]}
    return {"value": getattr(item, value_attr), "label": getattr(item, label_attr)}


def brand_options(brands: Iterable) -> list[dict]:
    return [_option(brand) for brand in brands]


def category_options(categories: Iterable) -> list[dict]:
    return [_option(category) for category in categories]


def occasion_options() -> list[dict]:
    return [{"value": item, "label": item} for item in OCCASION_OPTIONS]


def discount_option(value: str) -> dict:
    """Find the option for a "lo-hi" discount value, labelling unknown ranges."""
    if not value:
        return NO_DISCOUNT
    for option in DISCOUNT_OPTIONS:
        if option["value"] == value:
            return option
    low, _, high = value.partition("-")
    return {"value": value, "label": f"From {low}% to {high}%"}


def build_filter_options(brands: Iterable, categories: Iterable) -> FilterOptions:
    return FilterOptions(
        brands=[FilterOption(**option) for option in brand_options(brands)],
        categories=[FilterOption(**option) for option in category_options(categories)],
        occasions=[FilterOption(**option) for option in occasion_options()],
        discounts=[FilterOption(**option) for option in DISCOUNT_OPTIONS],
        genders=GENDER_OPTIONS,
        price_min=PRICE_RANGE_MIN,
        price_max=PRICE_RANGE_MAX,
        price_step=PRICE_RANGE_STEP,
    )


def _param_values(params: MultiDict, key: str) -> list[str]:
    """Values for a repeatable parameter, also accepting comma-separated lists."""
    values = []
    for raw in params.getlist(key):
        values.extend(part for part in str(raw).split(",") if part)
    return values


def _selected_options(values: Iterable[str], options: list[dict], as_int: bool) -> list[dict]:
    by_value = {option["value"]: option for option in options}
    selected = []
    for raw in values:
        try:
            value = int(raw) if as_int else raw
        except ValueError:
            logger.debug(f"Ignoring non-numeric filter value: {raw}")
            continue
        option = by_value.get(value)
        if option is not None and option not in selected:
            selected.append(option)
    return selected


@dataclass
class FilterState:
    """What each control of the filter panel currently shows."""
    brands_selected: list[dict] = field(default_factory=list)
    categories_selected: list[dict] = field(default_factory=list)
    slider_value: int = DEFAULT_SLIDER_VALUE
    slider_changed: bool = False
    selected_gender: str = ""
    occasions_selected: list[dict] = field(default_factory=list)
    discount_value: dict = field(default_factory=lambda: dict(NO_DISCOUNT))


class FilterForm:
    """
    Filter panel controller.

    Args:
        categories: Category rows or {"id", "name"} dicts offered in the panel
        brands: Brand rows or {"id", "name"} dicts offered in the panel
        query_params: Current URL query string, mapping or MultiDict
        navigate: Called as navigate(url, scroll=...) whenever the URL changes
        loop: Event loop used for the slider debounce (defaults to the running loop)
        debounce_seconds: Pause after the last slider change before navigating
    """

    def __init__(
        self,
        categories: Iterable,
        brands: Iterable,
        query_params,
        navigate: Navigate,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        debounce_seconds: float = SLIDER_DEBOUNCE_SECONDS,
    ):
        self.brands_option = brand_options(brands)
        self.categories_option = category_options(categories)
        self.occasion_option = occasion_options()
        self.search_params = self._to_multidict(query_params)
        self._navigate = navigate
        self._loop = loop
        self.debounce_seconds = debounce_seconds
        self._slider_handle: Optional[asyncio.TimerHandle] = None
        self.state = self._initial_state()

    @staticmethod
    def _to_multidict(query_params) -> MultiDict:
        if isinstance(query_params, str):
            return MultiDict(QueryParams(query_params).multi_items())
        if isinstance(query_params, (QueryParams, MultiDict)):
            return MultiDict(query_params.multi_items())
        items = query_params.items() if hasattr(query_params, "items") else (query_params or [])
        # Repeated parameters may arrive as {"brandId": ["1", "3"]}
        expanded = []
        for key, value in items:
            if isinstance(value, (list, tuple)):
                expanded.extend((key, str(item)) for item in value)
            else:
                expanded.append((key, str(value)))
        return MultiDict(expanded)

    def _initial_state(self) -> FilterState:
        params = self.search_params

        try:
            slider_value = int(params.get("priceRangeTo") or DEFAULT_SLIDER_VALUE)
        except ValueError:
            slider_value = DEFAULT_SLIDER_VALUE

        gender = params.get("gender") or ""
        if gender not in GENDER_OPTIONS:
            gender = ""

        return FilterState(
            brands_selected=_selected_options(
                _param_values(params, "brandId"), self.brands_option, as_int=True
            ),
            categories_selected=_selected_options(
                _param_values(params, "categoryId"), self.categories_option, as_int=True
            ),
            slider_value=slider_value,
            selected_gender=gender,
            occasions_selected=_selected_options(
                _param_values(params, "occasions"), self.occasion_option, as_int=False
            ),
            discount_value=dict(discount_option(params.get("discount") or "")),
        )

    @property
    def url(self) -> str:
        query = str(QueryParams(self.search_params.multi_items()))
        return f"{LISTING_PATH}?{query}"

    def _push(self, scroll: bool = True):
        url = self.url
        logger.debug(f"Navigating to {url}")
        self._navigate(url, scroll=scroll)

    def _replace_list(self, key: str, options: list[dict]):
        self.search_params.poplist(key)
        for option in options:
            self.search_params.append(key, str(option["value"]))

    # --- Control handlers ---------------------------------------------------

    def handle_brands_select(self, selected: list[dict]):
        self._replace_list("brandId", selected)
        self._push()
        self.state.brands_selected = list(selected)

    def handle_categories_selected(self, selected: list[dict]):
        self._replace_list("categoryId", selected)
        self._push()
        self.state.categories_selected = list(selected)

    def handle_slider(self, value):
        """Record the slider position and (re)start the debounce timer."""
        self.search_params["priceRangeTo"] = str(value)
        self.state.slider_value = int(value)
        self.state.slider_changed = True
        self._schedule_slider_navigation()

    def handle_gender_change(self, value: str):
        self.search_params["gender"] = value
        self._push()
        self.state.selected_gender = value

    def handle_occasions(self, selected: list[dict]):
        self._replace_list("occasions", selected)
        self._push()
        self.state.occasions_selected = list(selected)

    def handle_discount(self, option: dict):
        self.search_params["discount"] = option["value"]
        self._push()
        self.state.discount_value = dict(option)

    def handle_clear_all(self):
        """Drop every filter parameter, reset every control and navigate once."""
        for key in FILTER_PARAMS:
            self.search_params.poplist(key)
        self.cancel_pending()
        self.reset_form()
        self._push()

    def reset_form(self):
        self.state = FilterState()

    # --- Slider debounce ----------------------------------------------------

    def _schedule_slider_navigation(self):
        self.cancel_pending()
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # Nothing to wait on outside an event loop
                self.flush_slider()
                return
        self._slider_handle = loop.call_later(self.debounce_seconds, self.flush_slider)

    def flush_slider(self):
        """Navigate to the slider's price, starting again from the first page."""
        self._slider_handle = None
        if not self.state.slider_changed:
            return
        self.search_params.poplist("page")
        self.search_params.poplist("pageSize")
        self.search_params["priceRangeTo"] = str(self.state.slider_value)
        self._push(scroll=False)
        self.state.slider_changed = False

    def cancel_pending(self):
        if self._slider_handle is not None:
            self._slider_handle.cancel()
            self._slider_handle = None

    @property
    def has_pending_navigation(self) -> bool:
        return self._slider_handle is not None

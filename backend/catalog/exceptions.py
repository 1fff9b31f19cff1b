class CatalogError(Exception):
    """Base class for catalog errors that callers are expected to handle."""


class ProductNotFoundError(CatalogError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class InvalidSortError(CatalogError):
    def __init__(self, sort_by: str):
        self.sort_by = sort_by
        super().__init__(f"Invalid sort '{sort_by}', expected '<field>-<asc|desc>'")


class InvalidDiscountRangeError(CatalogError):
    def __init__(self, discount: str):
        self.discount = discount
        super().__init__(f"Invalid discount range '{discount}', expected '<lo>-<hi>'")

from pydantic import BaseModel


class CategoryOption(BaseModel):
    """A selected category as submitted by the product form ({value, label})."""
    value: int
    label: str | None = None


class CategoryName(BaseModel):
    id: int
    name: str

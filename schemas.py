"""
Database Schemas for the order backend

Each Pydantic model mirrors a MongoDB document shape. Attributes are snake_case
in Python and stored under their camelCase alias (e.g. new_price -> "newPrice").
Collections: "product", "order".
"""

from typing import Dict, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

KEY_SEPARATOR = "|"
DEFAULT_COLOR_NAME = "Default"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Collection: product
class Color(CamelModel):
    color_name: str = Field(..., min_length=1, description="Variant name, e.g. Red")
    image: Optional[str] = Field(None, description="Variant image reference")


class Translation(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None


class Translations(CamelModel):
    en: Translation = Field(default_factory=Translation)
    fr: Translation = Field(default_factory=Translation)
    ar: Translation = Field(default_factory=Translation)


class Product(CamelModel):
    title: str = Field(..., description="Product title")
    description: str = Field(..., description="Product description")
    translations: Translations = Field(default_factory=Translations)
    category: str = Field(..., description="Product category")
    cover_image: str = Field(..., description="Cover image reference")
    colors: List[Color] = Field(default_factory=list)
    old_price: float = Field(..., ge=0)
    new_price: float = Field(..., ge=0, description="Current selling price")
    stock_quantity: int = Field(..., ge=0)
    trending: bool = False


class ProductOut(Product):
    id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# Collection: order
class LineItemKey(NamedTuple):
    """Identifies one line item inside an order: a product in one colour."""
    product_id: str
    color_name: str

    @classmethod
    def parse(cls, raw: str) -> "LineItemKey":
        product_id, sep, color_name = raw.partition(KEY_SEPARATOR)
        if not sep or not product_id or not color_name:
            raise ValueError(f"Malformed product key: {raw!r}")
        return cls(product_id, color_name)

    def __str__(self) -> str:
        return f"{self.product_id}{KEY_SEPARATOR}{self.color_name}"


class LineItem(CamelModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    color: Color

    @property
    def key(self) -> LineItemKey:
        return LineItemKey(self.product_id, self.color.color_name)


class Address(CamelModel):
    city: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None


ProgressMap = Dict[str, int]


def _check_progress(progress: Optional[ProgressMap]) -> Optional[ProgressMap]:
    if progress:
        for key, value in progress.items():
            if not 0 <= value <= 100:
                raise ValueError(f"Progress for {key} must be between 0 and 100")
    return progress


class Order(CamelModel):
    name: str
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[Address] = None
    products: List[LineItem]
    total_price: float = Field(0, ge=0)
    is_paid: bool = False
    is_delivered: bool = False
    product_progress: ProgressMap = Field(default_factory=dict)
    version: int = 0


# Request bodies
class ColorChoice(CamelModel):
    color_name: Optional[str] = None
    image: Optional[str] = None


class LineItemRequest(CamelModel):
    product_id: str
    quantity: int = Field(..., gt=0)
    color: Optional[ColorChoice] = None


class OrderCreate(CamelModel):
    """Fields accepted when placing an order. Anything else in the body is ignored."""
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[Address] = None
    products: List[LineItemRequest] = Field(..., min_length=1)


class OrderStatusUpdate(CamelModel):
    is_paid: Optional[bool] = None
    is_delivered: Optional[bool] = None
    product_progress: Optional[ProgressMap] = None

    @model_validator(mode="after")
    def progress_in_range(self):
        _check_progress(self.product_progress)
        return self


class RemoveLineItemRequest(CamelModel):
    order_id: str
    product_key: Optional[str] = None
    product_id: Optional[str] = None
    color_name: Optional[str] = None
    quantity_to_remove: int = Field(..., gt=0)

    @model_validator(mode="after")
    def key_present(self):
        if self.product_key is not None:
            LineItemKey.parse(self.product_key)
        elif not (self.product_id and self.color_name):
            raise ValueError("Either productKey or productId and colorName are required")
        return self

    @property
    def key(self) -> LineItemKey:
        if self.product_key is not None:
            return LineItemKey.parse(self.product_key)
        return LineItemKey(self.product_id, self.color_name)


class NotificationRequest(CamelModel):
    # Required fields are checked by the engine so that a missing value is a 400.
    order_id: Optional[str] = None
    email: Optional[str] = None
    product_key: Optional[str] = None
    progress: Optional[int] = None

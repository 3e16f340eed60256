"""
Storefront Schemas

Pydantic models for the records kept in the JSON collections and for the
request payloads accepted by the API. Records are stored and returned with
camelCase keys (``productId``, ``storedName``); Python code uses snake_case.
"""
import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MediaType = Literal["image", "video"]
OrderStatus = Literal["Processing"]

DEFAULT_SIZES = ["S", "M", "L"]


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ---------- Catalog ----------

class MediaRef(Schema):
    type: MediaType
    url: str = Field(..., description="Path under the uploads mount")
    stored_name: str = Field(..., description="File name inside the upload directory")


class Review(Schema):
    name: str
    date: str = Field(..., description="ISO date")
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class ReviewIn(Schema):
    name: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    date: Optional[str] = None

    def to_review(self) -> Review:
        return Review(
            name=self.name,
            rating=self.rating,
            comment=self.comment,
            date=self.date or datetime.date.today().isoformat(),
        )


class Product(Schema):
    id: int
    name: str
    price: float = Field(..., ge=0, allow_inf_nan=False)
    category: str
    image: str
    media: List[MediaRef] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=lambda: list(DEFAULT_SIZES))
    description: Optional[str] = None
    reviews: List[Review] = Field(default_factory=list)


class ProductForm(Schema):
    """Multipart product fields. ``None`` means the field was not sent."""

    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    category: Optional[str] = None
    sizes: Optional[List[str]] = None
    description: Optional[str] = None

    @field_validator("name", "price", "category", "sizes", "description", mode="before")
    @classmethod
    def blank_is_absent(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("sizes", mode="before")
    @classmethod
    def split_sizes(cls, v):
        if isinstance(v, str):
            sizes = [s.strip() for s in v.split(",") if s.strip()]
            return sizes or None
        return v

    def present(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class SeedRequest(Schema):
    force: bool = False


# ---------- Cart ----------

class CartItem(Schema):
    product_id: int
    size: str
    name: str
    price: float = Field(..., ge=0, allow_inf_nan=False)
    image: str
    quantity: int = Field(1, ge=1)


class CartAdd(Schema):
    product_id: int
    size: str = Field(..., min_length=1)


class CartAdjust(Schema):
    change: int


# ---------- Orders ----------

class PaymentIn(Schema):
    card_name: str
    card_number: str = Field(..., min_length=4)
    expiry: str


class PaymentRecord(Schema):
    card_name: str
    card_number_last4: str
    expiry: str


class Totals(Schema):
    subtotal: float
    shipping: float
    tax: float
    total: float


class OrderIn(Schema):
    customer: Dict[str, Any] = Field(default_factory=dict)
    payment: PaymentIn


class Order(Schema):
    id: str
    date: str
    customer: Dict[str, Any] = Field(default_factory=dict)
    items: List[CartItem]
    payment: PaymentRecord
    totals: Totals
    status: OrderStatus = "Processing"

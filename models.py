from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


# ================================
# ENUMS
# ================================

class CouponType(str, Enum):
    CART_WISE = "cart-wise"
    PRODUCT_WISE = "product-wise"
    BXGY = "bxgy"


class CouponStatus(str, Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"


# ================================
# CART
# ================================

class CartItem(BaseModel):
    productId: int
    quantity: int = Field(ge=0)
    unitPrice: float = Field(ge=0)
    # Output only, filled in when a coupon is applied
    totalDiscount: float = 0.0


class Cart(BaseModel):
    items: List[CartItem] = Field(default_factory=list)


class CartRequest(BaseModel):
    cart: Cart


# ================================
# COUPON RULES
# ================================

class CartWiseRule(BaseModel):
    type: Literal["cart-wise"] = "cart-wise"
    threshold: float = Field(ge=0)
    discountPercent: float = Field(ge=0)


class ProductWiseRule(BaseModel):
    type: Literal["product-wise"] = "product-wise"
    productId: int
    discountPercent: float = Field(ge=0)


class ProductQuantity(BaseModel):
    productId: int
    quantity: int = Field(ge=1)


class BxGyRule(BaseModel):
    """Buy X, get Y.

    ``buyProducts[0].quantity`` is the number of buy units that earn one
    repetition; the buy quantities of every listed product are pooled.
    Each repetition grants ``getProducts`` quantities for free, up to
    ``repetitionLimit`` repetitions.
    """
    type: Literal["bxgy"] = "bxgy"
    buyProducts: List[ProductQuantity] = Field(default_factory=list)
    getProducts: List[ProductQuantity] = Field(default_factory=list)
    repetitionLimit: int = Field(ge=1)


CouponRule = Annotated[
    Union[CartWiseRule, ProductWiseRule, BxGyRule],
    Field(discriminator="type"),
]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ================================
# COUPONS
# ================================

class Coupon(BaseModel):
    id: str
    rule: CouponRule
    description: Optional[str] = None
    status: CouponStatus = CouponStatus.ACTIVE
    expiresAt: datetime
    createdAt: datetime
    modifiedAt: datetime

    @field_validator("expiresAt", "createdAt", "modifiedAt")
    @classmethod
    def timestamps_in_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @property
    def type(self) -> CouponType:
        return CouponType(self.rule.type)


class CouponCreate(BaseModel):
    rule: CouponRule
    description: Optional[str] = None
    expiresAt: datetime

    @field_validator("expiresAt")
    @classmethod
    def expires_in_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class CouponUpdate(BaseModel):
    """Replaces the rule as a whole; individual rule fields are never patched."""
    rule: CouponRule
    description: Optional[str] = None


# ================================
# RESULTS
# ================================

class ApplicableCoupon(BaseModel):
    couponId: str
    type: CouponType
    discountAmount: float = Field(ge=0)


class ApplyResult(BaseModel):
    items: List[CartItem]
    totalDiscount: float
    finalPrice: float
    totalPrice: float

"""
Coupon Schemas
"""
import re
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator

from storefront.core.utils import ensure_utc
from storefront.schemas.common import CamelModel

CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,50}$")

CouponType = Literal["percentage", "fixed"]


def _normalize_code(v: str) -> str:
    v = v.strip()
    if not CODE_PATTERN.match(v):
        raise ValueError("Coupon code must be 3-50 letters, digits, hyphens or underscores")
    return v.upper()


def _check_discount(coupon_type, discount_value):
    if coupon_type == "percentage" and discount_value is not None and discount_value > 100:
        raise ValueError("Percentage discount cannot exceed 100")


def _check_window(valid_from, valid_until):
    if valid_from and valid_until and valid_until < valid_from:
        raise ValueError("validUntil must not precede validFrom")


class CouponRules(CamelModel):
    """Field validators shared by stored coupons and seller input."""

    @field_validator("code", check_fields=False)
    @classmethod
    def normalize_code(cls, v):
        if v is None:
            return v
        return _normalize_code(v)

    @field_validator("discount_value", check_fields=False)
    @classmethod
    def positive_discount(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Discount value must be positive")
        return v

    @field_validator("min_purchase_amount", check_fields=False)
    @classmethod
    def normalize_min_purchase(cls, v):
        if v is None:
            return v
        if v < 0:
            raise ValueError("Minimum purchase amount cannot be negative")
        # 0 means no minimum
        return v or None

    @field_validator("valid_from", "valid_until", check_fields=False)
    @classmethod
    def utc_dates(cls, v):
        return ensure_utc(v) if v is not None else v


class Coupon(CouponRules):
    id: str
    code: str
    type: CouponType
    discount_value: Decimal
    min_purchase_amount: Optional[Decimal] = None
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None

    @model_validator(mode="after")
    def check_consistency(self):
        _check_discount(self.type, self.discount_value)
        _check_window(self.valid_from, self.valid_until)
        return self


class CouponCreate(CouponRules):
    code: str
    type: CouponType
    discount_value: Decimal
    min_purchase_amount: Optional[Decimal] = None
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None

    @model_validator(mode="after")
    def check_consistency(self):
        _check_discount(self.type, self.discount_value)
        _check_window(self.valid_from, self.valid_until)
        return self


class CouponUpdate(CouponRules):
    """Partial update. Cross-field rules are checked after merging into the stored coupon."""
    code: Optional[str] = None
    type: Optional[CouponType] = None
    discount_value: Optional[Decimal] = None
    min_purchase_amount: Optional[Decimal] = None
    is_active: Optional[bool] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None


class CouponValidateRequest(CamelModel):
    code: str
    subtotal: Decimal = Field(..., ge=0)


class CouponValidationResponse(CamelModel):
    is_valid: bool
    message: str
    code: Optional[str] = None
    discount_amount: Optional[Decimal] = None
    coupon: Optional[Coupon] = None

"""
Address Schemas
"""
import re
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from storefront.schemas.common import CamelModel

ZIP_PATTERN = re.compile(r"^[A-Za-z0-9 \-]{3,20}$")
PHONE_PATTERN = re.compile(r"^\+?[0-9 \-]{5,20}$")


class AddressFields(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = Field(..., min_length=2, max_length=100)
    street_address: str = Field(..., min_length=5, max_length=200)
    apartment_suite: Optional[str] = Field(None, max_length=100)
    city: str = Field(..., min_length=2, max_length=100)
    state: str = Field(..., min_length=2, max_length=100)
    zip_code: str = Field(..., min_length=3, max_length=20)
    country: str = Field(..., min_length=2, max_length=100)
    phone_number: str = Field(..., min_length=5, max_length=20)

    @field_validator("zip_code")
    @classmethod
    def validate_zip(cls, v):
        if not ZIP_PATTERN.match(v):
            raise ValueError("Zip code may contain only letters, digits, spaces and hyphens")
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v):
        if not PHONE_PATTERN.match(v):
            raise ValueError("Phone number may contain only digits, spaces, hyphens and a leading +")
        if len(re.sub(r"\D", "", v)) < 5:
            raise ValueError("Phone number must contain at least 5 digits")
        return v

    @field_validator("apartment_suite")
    @classmethod
    def blank_suite_is_none(cls, v):
        return v or None


class Address(AddressFields):
    id: str
    is_default: bool = False


class AddressCreate(AddressFields):
    """New address or full replacement. is_default None means 'keep / decide automatically'."""
    is_default: Optional[bool] = None


class SelectedAddressRequest(CamelModel):
    address_id: str

"""
Storefront Exception Hierarchy

Structured exception classes for the storefront services. Every exception
carries a machine-readable code, a human-readable message safe to show the
buyer, and optional details for logs. The HTTP layer maps them to status
codes via ``status_code``.

Exception Hierarchy:
    StorefrontError
    ├── StorefrontValidationError
    │   ├── InvalidQuantityError
    │   ├── CouponValidationError
    │   ├── DuplicateCouponCodeError
    │   ├── CouponAlreadyAppliedError
    │   ├── AddressValidationError
    │   └── CheckoutError
    ├── NotFoundError
    │   ├── ProductNotFoundError
    │   ├── CouponNotFoundError
    │   └── AddressNotFoundError
    ├── ExternalServiceError
    │   ├── ProductLookupError
    │   └── PaymentError
    │       └── PaymentDeclinedError
    ├── StorageError
    └── AccessError
        ├── AuthenticationError
        └── SellerAccessError
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """
    Base exception for all storefront errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging
        status_code: HTTP status used when the error reaches the API layer
    """

    default_code: str = "STOREFRONT_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class StorefrontValidationError(StorefrontError):
    """Input rejected before any state was mutated."""
    default_code = "VALIDATION_ERROR"
    status_code = 400


class InvalidQuantityError(StorefrontValidationError):
    default_code = "INVALID_QUANTITY"

    def __init__(self, message: str, product_id: Optional[str] = None, quantity: Optional[int] = None, **kwargs):
        details = kwargs.pop("details", {})
        details.update({"product_id": product_id, "quantity": quantity})
        super().__init__(message, details=details, **kwargs)


class CouponValidationError(StorefrontValidationError):
    """Raised when coupon validation fails."""
    default_code = "COUPON_INVALID"

    def __init__(self, code: str, message: str, **kwargs):
        super().__init__(message, code=code, **kwargs)


class DuplicateCouponCodeError(StorefrontValidationError):
    default_code = "DUPLICATE_COUPON_CODE"
    status_code = 409

    def __init__(self, coupon_code: str, **kwargs):
        super().__init__(
            f'Coupon code "{coupon_code}" already exists.',
            details={"coupon_code": coupon_code},
            **kwargs,
        )


class CouponAlreadyAppliedError(StorefrontValidationError):
    """Only one coupon may be applied to a checkout at a time."""
    default_code = "COUPON_ALREADY_APPLIED"
    status_code = 409


class AddressValidationError(StorefrontValidationError):
    default_code = "ADDRESS_INVALID"


class CheckoutError(StorefrontValidationError):
    """Checkout preconditions not met (no address, empty cart, zero total)."""
    default_code = "CHECKOUT_ERROR"


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFoundError(StorefrontError):
    default_code = "NOT_FOUND"
    status_code = 404


class ProductNotFoundError(NotFoundError):
    default_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str, **kwargs):
        super().__init__("Product not found", details={"product_id": product_id}, **kwargs)


class CouponNotFoundError(NotFoundError):
    default_code = "COUPON_NOT_FOUND"

    def __init__(self, coupon_id: str, **kwargs):
        super().__init__("Coupon not found", details={"coupon_id": coupon_id}, **kwargs)


class AddressNotFoundError(NotFoundError):
    default_code = "ADDRESS_NOT_FOUND"

    def __init__(self, address_id: str, **kwargs):
        super().__init__("Address not found", details={"address_id": address_id}, **kwargs)


# =============================================================================
# EXTERNAL SERVICE ERRORS
# =============================================================================

class ExternalServiceError(StorefrontError):
    """A collaborator (catalog, payment gateway) failed. The action is retryable."""
    default_code = "EXTERNAL_SERVICE_ERROR"
    status_code = 502


class ProductLookupError(ExternalServiceError):
    default_code = "PRODUCT_LOOKUP_FAILED"


class PaymentError(ExternalServiceError):
    default_code = "PAYMENT_ERROR"


class PaymentDeclinedError(PaymentError):
    default_code = "PAYMENT_DECLINED"
    status_code = 402


class StorageError(StorefrontError):
    """The key-value backend could not be read or written."""
    default_code = "STORAGE_ERROR"
    status_code = 503


# =============================================================================
# ACCESS ERRORS
# =============================================================================

class AccessError(StorefrontError):
    default_code = "ACCESS_DENIED"
    status_code = 403


class AuthenticationError(AccessError):
    default_code = "NOT_AUTHENTICATED"
    status_code = 401


class SellerAccessError(AccessError):
    default_code = "SELLER_ACCESS_REQUIRED"

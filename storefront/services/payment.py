"""
Payment Gateways

Defines the gateway interface used by checkout.

- MockPaymentGateway: simulated processor for development and demos
- StripePaymentGateway: confirms a Stripe PaymentIntent
"""
import asyncio
import logging
import uuid
from decimal import Decimal
from typing import Optional, Protocol

import stripe

from storefront.core.utils import quantize_money, to_decimal
from storefront.schemas.checkout import PaymentInfo, PaymentResult

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    """Protocol for payment gateways."""

    async def process_payment(self, amount: Decimal, payment_info: PaymentInfo) -> PaymentResult:
        ...


class MockPaymentGateway:
    """Mock gateway for development/testing. Always succeeds after a delay."""

    def __init__(self, delay_seconds: float = 1.5):
        self.delay_seconds = delay_seconds

    async def process_payment(self, amount: Decimal, payment_info: PaymentInfo) -> PaymentResult:
        logger.info(f"[MOCK PAYMENT] Processing {amount} via {payment_info.method}")

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        if payment_info.method == "phonepe":
            return PaymentResult(
                success=True,
                message="PhonePe payment successful (simulation)",
                transaction_id=f"PHNPE_{uuid.uuid4().hex[:8]}",
            )

        return PaymentResult(
            success=True,
            message="Payment successful (simulation)",
            transaction_id=f"TXN_{uuid.uuid4().hex[:10]}",
        )


def to_minor_units(amount) -> int:
    """Stripe amounts are integers in the smallest currency unit."""
    return int(quantize_money(to_decimal(amount)) * 100)


class StripePaymentGateway:
    """
    Creates and confirms a PaymentIntent in one call.

    payment_info.order_details may carry ``payment_method`` (a Stripe payment
    method id); without it Stripe's test card ``pm_card_visa`` is used.
    """

    def __init__(self, api_key: str, currency: str = "inr", default_payment_method: Optional[str] = "pm_card_visa"):
        self.api_key = api_key
        self.currency = currency
        self.default_payment_method = default_payment_method

    async def process_payment(self, amount: Decimal, payment_info: PaymentInfo) -> PaymentResult:
        payment_method = payment_info.order_details.get("payment_method", self.default_payment_method)
        metadata = {"method": payment_info.method}
        if payment_info.user_key:
            metadata["user_key"] = payment_info.user_key

        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                api_key=self.api_key,
                amount=to_minor_units(amount),
                currency=self.currency,
                payment_method=payment_method,
                confirm=True,
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
                metadata=metadata,
            )
        except stripe.error.StripeError as e:
            logger.warning(f"Stripe payment failed: {e}")
            return PaymentResult(success=False, message=getattr(e, "user_message", None) or str(e))

        if intent.status != "succeeded":
            logger.warning(f"Stripe PaymentIntent {intent.id} ended in status {intent.status}")
            return PaymentResult(
                success=False,
                message=f"Payment not completed (status: {intent.status})",
                transaction_id=intent.id,
            )

        return PaymentResult(success=True, message="Payment successful", transaction_id=intent.id)

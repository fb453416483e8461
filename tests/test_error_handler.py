"""
Tests for error sanitization and StorefrontError rendering.
"""
import json
from unittest.mock import MagicMock, patch

import pytest

from storefront.core.error_handler import (
    internal_error_body,
    is_sensitive_error,
    sanitize_error_message,
    storefront_error_handler,
)
from storefront.core.exceptions import CheckoutError, StorageError


class TestSanitizeErrorMessage:

    @pytest.mark.parametrize("message", [
        "asyncpg.exceptions.ConnectionDoesNotExistError",
        "could not connect to redis://cache:6379",
        "invalid api_key supplied",
    ])
    def test_sensitive_messages_are_hidden(self, message):
        assert is_sensitive_error(message)
        assert sanitize_error_message(message) == "An internal error occurred. Please try again later."

    def test_plain_message_passes_through(self):
        assert sanitize_error_message("Your cart is empty.") == "Your cart is empty."

    def test_long_message_truncated(self):
        assert sanitize_error_message("x" * 250) == "x" * 200 + "..."

    def test_debug_shows_everything(self):
        with patch("storefront.core.error_handler.settings") as settings:
            settings.DEBUG = True
            assert sanitize_error_message("password mismatch") == "password mismatch"


def make_request():
    request = MagicMock()
    request.method = "POST"
    request.url.path = "/api/checkout/pay"
    return request


@pytest.mark.asyncio
async def test_handler_uses_status_and_code():
    exc = CheckoutError("Your cart is empty.", code="EMPTY_CART")

    response = await storefront_error_handler(make_request(), exc)

    assert response.status_code == 400
    body = json.loads(response.body)
    assert body == {"error": "EMPTY_CART", "message": "Your cart is empty.", "details": {}}


@pytest.mark.asyncio
async def test_handler_sanitizes_server_errors():
    exc = StorageError("sqlalchemy.exc.OperationalError: connection refused")

    response = await storefront_error_handler(make_request(), exc)

    assert response.status_code == 503
    assert json.loads(response.body)["message"] == "An internal error occurred. Please try again later."


def test_internal_error_body_hides_detail():
    body = internal_error_body(RuntimeError("db exploded"), "1.2.3.4-ff")

    assert body == {
        "error": "internal_error",
        "error_id": "1.2.3.4-ff",
        "message": "An unexpected error occurred. Please try again later.",
    }

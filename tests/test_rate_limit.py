"""
Tests for client identification and the 429 response.
"""
import json
from unittest.mock import MagicMock

from storefront.core.rate_limit import get_client_ip, rate_limit_exceeded_handler


def make_request(headers=None, host="10.0.0.9"):
    request = MagicMock()
    request.headers = headers or {}
    request.client.host = host
    request.url.path = "/api/checkout/pay"
    return request


def test_forwarded_for_uses_first_hop():
    request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    assert get_client_ip(request) == "203.0.113.7"


def test_falls_back_to_peer_address():
    assert get_client_ip(make_request()) == "10.0.0.9"


def test_exceeded_handler():
    exc = MagicMock()
    exc.detail = "10 per 1 minute"

    response = rate_limit_exceeded_handler(make_request(), exc)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    body = json.loads(response.body)
    assert body["error"] == "rate_limit_exceeded"
    assert body["details"] == {"limit": "10 per 1 minute"}

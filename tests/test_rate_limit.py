"""Tests for rate limiting middleware."""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from app.config import get_settings
from app.main import app
from app.middleware.rate_limit import (
    get_client_ip,
    get_limiter,
    rate_limit_exceeded_handler,
    RATE_LIMITS,
)


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Reset the rate limiter before each test."""
    limiter = get_limiter()
    limiter.reset()


@pytest.fixture
def client(mock_env_vars) -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)


def make_request(forwarded_for: str = None) -> MagicMock:
    mock_request = MagicMock(spec=Request)
    mock_request.headers = {"X-Forwarded-For": forwarded_for} if forwarded_for else {}
    return mock_request


# Client IP Detection Tests


def test_get_client_ip_direct(mock_env_vars) -> None:
    """Test getting client IP from direct connection."""
    with patch("app.middleware.rate_limit.get_remote_address", return_value="192.168.1.100"):
        assert get_client_ip(make_request()) == "192.168.1.100"


def test_forwarded_for_ignored_without_trusted_proxies(mock_env_vars) -> None:
    """Test X-Forwarded-For cannot spoof the key when no proxy is trusted."""
    with patch("app.middleware.rate_limit.get_remote_address", return_value="192.168.1.100"):
        assert get_client_ip(make_request("10.0.0.1")) == "192.168.1.100"


def test_forwarded_for_used_from_trusted_proxy(mock_env_vars, monkeypatch) -> None:
    """Test the first forwarded address is used behind a trusted proxy."""
    monkeypatch.setenv("TRUSTED_PROXIES", "10.0.0.254, 10.0.0.253")
    get_settings.cache_clear()

    with patch("app.middleware.rate_limit.get_remote_address", return_value="10.0.0.254"):
        assert get_client_ip(make_request("  203.0.113.50  , 10.0.0.254")) == "203.0.113.50"


def test_forwarded_for_ignored_from_untrusted_peer(mock_env_vars, monkeypatch) -> None:
    """Test a peer outside the trusted list is keyed by its own address."""
    monkeypatch.setenv("TRUSTED_PROXIES", "10.0.0.254")
    get_settings.cache_clear()

    with patch("app.middleware.rate_limit.get_remote_address", return_value="198.51.100.7"):
        assert get_client_ip(make_request("203.0.113.50")) == "198.51.100.7"


# Rate Limit Configuration Tests


def test_rate_limits_configuration() -> None:
    """Test rate limit configurations are properly set."""
    assert RATE_LIMITS["generate"] == "5/minute"
    assert RATE_LIMITS["papers"] == "100/minute"


def test_limiter_instance() -> None:
    """Test limiter instance is the one attached to the app."""
    assert get_limiter() is app.state.limiter


# Rate Limit Exceeded Handler Tests


def test_rate_limit_exceeded_handler() -> None:
    """Test rate limit exceeded handler returns proper response."""
    mock_exc = MagicMock()
    mock_exc.retry_after = 45
    mock_exc.detail = "5 per 1 minute"

    response = rate_limit_exceeded_handler(MagicMock(spec=Request), mock_exc)

    assert response.status_code == 429
    assert response.media_type == "application/json"
    assert response.headers["Retry-After"] == "45"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Limit"] == "5 per 1 minute"

    body = json.loads(response.body.decode())
    assert body["detail"] == "Rate limit exceeded"
    assert body["retry_after"] == 45
    assert "retry after 45 seconds" in body["message"]


def test_rate_limit_exceeded_handler_default_retry() -> None:
    """Test rate limit exceeded handler with default retry time."""
    mock_exc = MagicMock(spec=[])  # Empty spec means no attributes

    response = rate_limit_exceeded_handler(MagicMock(spec=Request), mock_exc)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    assert "X-RateLimit-Limit" not in response.headers


# Integration Tests with FastAPI


def test_version_endpoint_no_rate_limit(client: TestClient) -> None:
    """Test that version endpoint is not rate limited."""
    for _ in range(20):
        response = client.get("/version")
        assert response.status_code == 200


@patch("app.routers.papers.get_supabase_client")
def test_papers_endpoint_rate_limit(mock_supabase: MagicMock, client: TestClient) -> None:
    """Test the papers limit allows normal browsing and is enforced past 100/minute."""
    query = mock_supabase.return_value.table.return_value.select.return_value.order.return_value
    query.limit.return_value.execute.return_value.data = []

    statuses = [client.get("/api/papers").status_code for _ in range(101)]

    assert statuses[:100] == [200] * 100
    assert statuses[100] == 429

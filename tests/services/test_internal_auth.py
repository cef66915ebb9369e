from __future__ import annotations

from types import SimpleNamespace

from credits_engine.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_valid_internal_token,
)


def _request(*, host: str | None, headers: dict[str, str] | None = None) -> SimpleNamespace:
    client = SimpleNamespace(host=host) if host is not None else None
    return SimpleNamespace(client=client, headers=headers or {})


def test_is_valid_internal_token_requires_exact_match() -> None:
    assert is_valid_internal_token(expected_token="secret", received_token="secret") is True
    assert is_valid_internal_token(expected_token="secret", received_token="wrong") is False
    assert is_valid_internal_token(expected_token="secret", received_token=None) is False
    assert is_valid_internal_token(expected_token="", received_token="") is False


def test_is_client_ip_allowed_supports_exact_ip_and_cidr() -> None:
    allowlist = "127.0.0.1,10.0.0.0/8, ::1/128"
    assert is_client_ip_allowed(client_ip="127.0.0.1", allowlist=allowlist) is True
    assert is_client_ip_allowed(client_ip="10.12.33.1", allowlist=allowlist) is True
    assert is_client_ip_allowed(client_ip="::1", allowlist=allowlist) is True
    assert is_client_ip_allowed(client_ip="192.168.1.5", allowlist=allowlist) is False
    assert is_client_ip_allowed(client_ip="not-an-ip", allowlist=allowlist) is False
    assert is_client_ip_allowed(client_ip="127.0.0.1", allowlist="") is False


def test_extract_client_ip_ignores_forwarded_for_from_untrusted_peer() -> None:
    request = _request(host="198.51.100.7", headers={"X-Forwarded-For": "127.0.0.1"})
    assert extract_client_ip(request, trusted_proxies="10.0.0.0/8") == "198.51.100.7"


def test_extract_client_ip_uses_first_forwarded_hop_behind_trusted_proxy() -> None:
    request = _request(host="10.0.0.2", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.2"})
    assert extract_client_ip(request, trusted_proxies="10.0.0.0/8") == "203.0.113.9"


def test_extract_client_ip_rejects_malformed_forwarded_for() -> None:
    request = _request(host="10.0.0.2", headers={"X-Forwarded-For": "garbage"})
    assert extract_client_ip(request, trusted_proxies="10.0.0.0/8") is None


def test_extract_client_ip_without_client() -> None:
    assert extract_client_ip(_request(host=None)) is None

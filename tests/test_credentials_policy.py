from __future__ import annotations

import pytest

from stellar_auth.domain.exceptions import ValidationError
from stellar_auth.domain.services.credentials_policy import (
    is_valid_email,
    normalize_email,
    password_policy_violations,
)
from stellar_auth.domain.services.redirects import url_origin, validate_frontend_url


def test_normalize_email_strips_and_casefolds():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


@pytest.mark.parametrize(
    "email,valid",
    [
        ("alice@example.com", True),
        ("first.last+tag@sub.example.org", True),
        ("no-at-sign.example.com", False),
        ("double..dot@example.com", False),
        ("trailing.@example.com", False),
        ("alice@.example.com", False),
        ("a" * 65 + "@example.com", False),
        ("a@" + "b" * 250 + ".com", False),
    ],
)
def test_is_valid_email(email, valid):
    assert is_valid_email(email) is valid


def test_strong_password_has_no_violations():
    assert password_policy_violations("Sup3r$ecret!") == []


def test_weak_password_lists_every_violation():
    violations = password_policy_violations("abc")

    assert "at least 8 characters" in violations
    assert "at least one uppercase letter" in violations
    assert "at least one number" in violations
    assert "at least one special character" in violations


def test_common_password_is_rejected():
    assert "a less common password" in password_policy_violations("password")


def test_overlong_password_is_rejected():
    assert "maximum 128 characters" in password_policy_violations("Aa1!" * 40)


ALLOWED = ("https://app.example.com", "http://127.0.0.1:5173")


def test_frontend_redirect_validation():
    assert validate_frontend_url("https://app.example.com/", allowed_origins=ALLOWED) == "https://app.example.com"
    assert validate_frontend_url("https://APP.example.com:443/done", allowed_origins=ALLOWED) == (
        "https://APP.example.com:443/done"
    )
    assert validate_frontend_url("http://127.0.0.1:5173", allowed_origins=ALLOWED) == "http://127.0.0.1:5173"


@pytest.mark.parametrize(
    "url",
    [
        "http://app.example.com",
        "ftp://app.example.com",
        "https://evil.example.com",
        "https://app.example.com.evil.example",
        "https://app.example.com:8443",
        "http://127.0.0.1:3000",
        "//app.example.com",
    ],
)
def test_frontend_redirect_outside_allowed_origins_is_rejected(url):
    with pytest.raises(ValidationError):
        validate_frontend_url(url, allowed_origins=ALLOWED)


def test_url_origin_drops_default_port_and_path():
    assert url_origin("https://App.Example.com:443/a?b=c") == "https://app.example.com"
    assert url_origin("http://localhost:3000/") == "http://localhost:3000"

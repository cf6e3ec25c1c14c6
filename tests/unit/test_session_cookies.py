"""Unit tests for session cookie handling."""

from typing import Dict, Set

import pytest
from fastapi import Response

from vidtube.api.session_cookies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    SessionCookiePolicy,
)
from vidtube.kernel.identity.jwt import TokenPair


def _cookie_attributes(response: Response) -> Dict[str, Set[str]]:
    """Map cookie name to its attributes, ignoring value and lifetime."""
    cookies = {}
    for header in response.headers.getlist("set-cookie"):
        name_value, *attrs = header.split("; ")
        name = name_value.split("=", 1)[0]
        cookies[name] = {
            attr.lower()
            for attr in attrs
            if not attr.lower().startswith(("max-age", "expires"))
        }
    return cookies


@pytest.fixture
def tokens() -> TokenPair:
    return TokenPair(
        access_token="access-value",
        refresh_token="refresh-value",
        expires_in=900,
        refresh_expires_in=864000,
    )


@pytest.mark.parametrize(
    "policy",
    [
        SessionCookiePolicy(),
        SessionCookiePolicy(secure=False, samesite="strict"),
        SessionCookiePolicy(samesite="none", domain="vidtube.test", path="/api"),
    ],
)
def test_clear_uses_same_attributes_as_set(policy: SessionCookiePolicy, tokens: TokenPair):
    set_response = Response()
    policy.set_tokens(set_response, tokens)
    clear_response = Response()
    policy.clear_tokens(clear_response)

    set_attrs = _cookie_attributes(set_response)
    clear_attrs = _cookie_attributes(clear_response)

    assert set(set_attrs) == set(clear_attrs) == {ACCESS_COOKIE, REFRESH_COOKIE}
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        assert set_attrs[name] == clear_attrs[name]
        assert "httponly" in set_attrs[name]


def test_cookie_lifetimes_follow_tokens(tokens: TokenPair):
    response = Response()
    SessionCookiePolicy().set_tokens(response, tokens)

    headers = response.headers.getlist("set-cookie")
    access = next(h for h in headers if h.startswith(f"{ACCESS_COOKIE}="))
    refresh = next(h for h in headers if h.startswith(f"{REFRESH_COOKIE}="))

    assert "access-value" in access
    assert "Max-Age=900" in access
    assert "refresh-value" in refresh
    assert "Max-Age=864000" in refresh


def test_clear_expires_cookies():
    response = Response()
    SessionCookiePolicy().clear_tokens(response)

    for header in response.headers.getlist("set-cookie"):
        assert "Max-Age=0" in header


def test_insecure_policy_omits_secure_flag(tokens: TokenPair):
    response = Response()
    SessionCookiePolicy(secure=False).set_tokens(response, tokens)

    for attrs in _cookie_attributes(response).values():
        assert "secure" not in attrs

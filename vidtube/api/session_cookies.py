"""
Session cookies carrying the access and refresh tokens.

Setting and clearing go through the same ``SessionCookiePolicy`` so the
browser always sees identical attributes on both, otherwise it treats the
clearing cookie as a different cookie and keeps the old one.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request, Response

from vidtube.config import Settings
from vidtube.kernel.identity.jwt import TokenPair

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


@dataclass(frozen=True)
class SessionCookiePolicy:
    secure: bool = True
    samesite: str = "lax"
    domain: Optional[str] = None
    path: str = "/"

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionCookiePolicy":
        return cls(
            secure=settings.cookie_secure,
            samesite=settings.cookie_samesite,
            domain=settings.cookie_domain,
            path=settings.cookie_path,
        )

    def attributes(self) -> Dict[str, Any]:
        return {
            "httponly": True,
            "secure": self.secure,
            "samesite": self.samesite,
            "domain": self.domain,
            "path": self.path,
        }

    def set_tokens(self, response: Response, tokens: TokenPair) -> None:
        attrs = self.attributes()
        response.set_cookie(ACCESS_COOKIE, tokens.access_token, max_age=tokens.expires_in, **attrs)
        response.set_cookie(
            REFRESH_COOKIE, tokens.refresh_token, max_age=tokens.refresh_expires_in, **attrs
        )

    def clear_tokens(self, response: Response) -> None:
        attrs = self.attributes()
        for name in (ACCESS_COOKIE, REFRESH_COOKIE):
            response.delete_cookie(name, **attrs)


def read_access_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(ACCESS_COOKIE)


def read_refresh_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(REFRESH_COOKIE)

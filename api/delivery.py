"""
Token delivery channels.

A freshly issued session reaches the browser through two named cookies with
different exposure:
- refresh_token: HttpOnly, scoped to the session endpoints, lives as long as
  the refresh token (7 days)
- access_token: readable by scripts (independently loaded UI fragments read it),
  site-wide path, lives as long as the access token (5 minutes)

Handlers never call set_cookie directly; they go through TokenDelivery.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from utils.tokens import TokenPair


@dataclass(frozen=True)
class CookieChannel:
    name: str
    path: str
    max_age: timedelta
    http_only: bool
    secure: bool = False
    samesite: str = "Strict"

    def write(self, response, value: str) -> None:
        response.set_cookie(
            self.name,
            value,
            max_age=int(self.max_age.total_seconds()),
            path=self.path,
            secure=self.secure,
            httponly=self.http_only,
            samesite=self.samesite,
        )

    def clear(self, response) -> None:
        response.delete_cookie(
            self.name,
            path=self.path,
            secure=self.secure,
            httponly=self.http_only,
            samesite=self.samesite,
        )

    def read(self, request) -> str | None:
        return request.cookies.get(self.name) or None


class TokenDelivery:
    def __init__(self, refresh: CookieChannel, access: CookieChannel):
        self.refresh = refresh
        self.access = access

    @classmethod
    def from_config(cls, config) -> "TokenDelivery":
        secure = bool(config.get("COOKIE_SECURE", False))
        samesite = config.get("COOKIE_SAMESITE", "Strict")
        return cls(
            refresh=CookieChannel(
                name=config.get("REFRESH_COOKIE_NAME", "refresh_token"),
                path=config.get("REFRESH_COOKIE_PATH", "/api/v1/auth"),
                max_age=config.get("REFRESH_TOKEN_EXPIRES", timedelta(days=7)),
                http_only=True,
                secure=secure,
                samesite=samesite,
            ),
            access=CookieChannel(
                name=config.get("ACCESS_COOKIE_NAME", "access_token"),
                path="/",
                max_age=config.get("ACCESS_TOKEN_EXPIRES", timedelta(minutes=5)),
                http_only=False,
                secure=secure,
                samesite=samesite,
            ),
        )

    def deliver(self, response, pair: TokenPair):
        self.refresh.write(response, pair.refresh_token)
        self.access.write(response, pair.access_token)
        return response

    def clear(self, response):
        self.refresh.clear(response)
        self.access.clear(response)
        return response

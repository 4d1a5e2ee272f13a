"""
Token codec: stateless creation/verification of signed access and refresh tokens.

- Access and refresh tokens are signed with distinct secrets.
- Every token carries a `type` claim; verification rejects a token whose type
  does not match what the caller expects (a refresh token is never an access token).
- Refresh tokens carry a random `jti` so two tokens minted in the same second
  for the same user still differ (and therefore hash differently).
- Settings are passed in explicitly; nothing here reads app config or env.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

import jwt

from models.user import Role
from utils.security import generate_jti, hash_token

ACCESS = "access"
REFRESH = "refresh"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenSettings:
    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=5)
    refresh_ttl: timedelta = timedelta(days=7)
    issuer: str = "session-auth-service"

    def __post_init__(self):
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("access and refresh secrets are required")
        if self.access_secret == self.refresh_secret:
            raise ValueError("access and refresh tokens must use different secrets")

    @classmethod
    def from_config(cls, config) -> "TokenSettings":
        return cls(
            access_secret=config["JWT_ACCESS_SECRET"],
            refresh_secret=config["JWT_REFRESH_SECRET"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            access_ttl=config.get("ACCESS_TOKEN_EXPIRES", timedelta(minutes=5)),
            refresh_ttl=config.get("REFRESH_TOKEN_EXPIRES", timedelta(days=7)),
            issuer=config.get("JWT_ISSUER", "session-auth-service"),
        )


class TokenStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: str
    role: Role
    type: str
    iat: int
    exp: int
    jti: Optional[str] = None


@dataclass(frozen=True)
class VerificationResult:
    status: TokenStatus
    payload: Optional[TokenPayload] = None

    @property
    def valid(self) -> bool:
        return self.status is TokenStatus.VALID


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    refresh_token_hash: str

    def __repr__(self) -> str:
        # keep raw tokens out of logs and tracebacks
        return f"TokenPair(refresh_token_hash={self.refresh_token_hash[:12]}...)"


class TokenCodec:
    def __init__(self, settings: TokenSettings, clock: Callable[[], datetime] = _utcnow):
        self.settings = settings
        # stamps iat/exp when minting; verification always checks exp against the real time
        self._clock = clock

    @property
    def access_ttl(self) -> timedelta:
        return self.settings.access_ttl

    @property
    def refresh_ttl(self) -> timedelta:
        return self.settings.refresh_ttl

    def _claims(self, user_id: str, email: str, role, token_type: str, ttl: timedelta) -> Dict[str, Any]:
        now = self._clock()
        return {
            "iss": self.settings.issuer,
            "sub": str(user_id),
            "email": email,
            "role": Role(role).value,
            "type": token_type,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }

    def create_token_pair(self, user_id: str, email: str, role) -> TokenPair:
        access_claims = self._claims(user_id, email, role, ACCESS, self.settings.access_ttl)
        access_token = jwt.encode(access_claims, self.settings.access_secret, algorithm=self.settings.algorithm)

        refresh_claims = self._claims(user_id, email, role, REFRESH, self.settings.refresh_ttl)
        refresh_claims["jti"] = generate_jti()
        refresh_token = jwt.encode(refresh_claims, self.settings.refresh_secret, algorithm=self.settings.algorithm)

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            refresh_token_hash=hash_token(refresh_token),
        )

    def verify_access_token(self, token: str) -> VerificationResult:
        return self._verify(token, self.settings.access_secret, ACCESS)

    def verify_refresh_token(self, token: str) -> VerificationResult:
        return self._verify(token, self.settings.refresh_secret, REFRESH)

    def _verify(self, token: str, secret: str, expected_type: str) -> VerificationResult:
        if not token or not isinstance(token, str):
            return VerificationResult(TokenStatus.INVALID)
        try:
            decoded = jwt.decode(
                token,
                secret,
                algorithms=[self.settings.algorithm],
                issuer=self.settings.issuer,
                options={"require": ["exp", "iat", "sub", "type"]},
            )
        except jwt.ExpiredSignatureError:
            return VerificationResult(TokenStatus.EXPIRED)
        except jwt.InvalidTokenError:
            return VerificationResult(TokenStatus.INVALID)

        if decoded.get("type") != expected_type:
            return VerificationResult(TokenStatus.INVALID)
        if expected_type == REFRESH and not decoded.get("jti"):
            return VerificationResult(TokenStatus.INVALID)
        try:
            role = Role(decoded.get("role"))
        except ValueError:
            return VerificationResult(TokenStatus.INVALID)

        payload = TokenPayload(
            user_id=decoded["sub"],
            email=decoded.get("email", ""),
            role=role,
            type=decoded["type"],
            iat=decoded["iat"],
            exp=decoded["exp"],
            jti=decoded.get("jti"),
        )
        return VerificationResult(TokenStatus.VALID, payload)

    @staticmethod
    def hash_token(token: str) -> str:
        return hash_token(token)

"""
Authorization gate shared by every service that trusts our access tokens.

    @bp.get("/things")
    @require_authenticated()
    @require_role(Role.ADMIN, Role.SUPER_ADMIN)
    def things(): ...

require_authenticated attaches g.identity; require_role / require_min_role
must sit below it.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import current_app, g, request

from models.user import Role
from utils.exceptions import Forbidden, InvalidToken, Unauthorized


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str
    role: Role


def get_token_codec():
    return current_app.extensions["token_codec"]


def extract_token() -> Optional[str]:
    """Bearer token from the Authorization header, else the script-readable access cookie."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        token = auth.split(" ", 1)[1].strip()
        if token:
            return token
    cookie_name = current_app.config.get("ACCESS_COOKIE_NAME", "access_token")
    return request.cookies.get(cookie_name) or None


def verify_bearer(token: str) -> Optional[Identity]:
    """The verification primitive downstream services call: token in, identity or None out."""
    result = get_token_codec().verify_access_token(token)
    if not result.valid:
        return None
    payload = result.payload
    return Identity(user_id=payload.user_id, email=payload.email, role=payload.role)


def current_identity() -> Optional[Identity]:
    return getattr(g, "identity", None)


def require_authenticated():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = extract_token()
            if not token:
                raise Unauthorized()
            identity = verify_bearer(token)
            if identity is None:
                raise InvalidToken()
            g.identity = identity
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def optional_authenticated():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.pop("identity", None)
            token = extract_token()
            if token:
                identity = verify_bearer(token)
                if identity is not None:
                    g.identity = identity
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def require_role(*allowed_roles):
    """
    Allow access only if the attached identity's role is one of allowed_roles.
    Runs after require_authenticated: 401 with no identity, 403 on a role miss.
    """
    allowed = frozenset(Role(r) for r in allowed_roles)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity = current_identity()
            if identity is None:
                raise Unauthorized()
            if identity.role not in allowed:
                raise Forbidden()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def require_min_role(minimum):
    minimum = Role(minimum)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity = current_identity()
            if identity is None:
                raise Unauthorized()
            if not identity.role.satisfies(minimum):
                raise Forbidden()
            return fn(*args, **kwargs)

        return wrapper

    return decorator

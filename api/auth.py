"""
Session blueprint:
- POST /auth/signup
- POST /auth/login
- POST /auth/refresh          (refresh cookie only)
- POST /auth/logout           (access credential; ends every device's session)
- GET  /auth/me
- POST /auth/change-password

Successful signup/login/refresh return `{success, user, accessToken}` and set
both token cookies through TokenDelivery. The refresh token never appears in a
response body or a log line.
"""
from __future__ import annotations

import logging
from typing import Tuple

from flask import Blueprint, request, jsonify, g, current_app

from api.extensions import (
    audit_trail,
    credential_store,
    session_ledger,
    token_codec,
    token_delivery,
)
from models.audit_log import AuditAction
from models.base_model import utcnow
from models.schemas.user import ChangePasswordSchema, LoginSchema, SignupSchema, UserOutSchema
from models.user import Role, User
from utils.decorators import require_authenticated
from utils.exceptions import (
    InvalidCredentials,
    InvalidToken,
    NotFound,
    TokenReuseDetected,
    Unauthorized,
)
from utils.tokens import TokenPair

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/auth")

signup_schema = SignupSchema()
login_schema = LoginSchema()
change_password_schema = ChangePasswordSchema()
user_out_schema = UserOutSchema()


def client_ip() -> str:
    return request.remote_addr or "unknown"


def _mint(user: User) -> Tuple[TokenPair, object]:
    pair = token_codec().create_token_pair(user.id, user.email, user.role)
    return pair, utcnow() + token_codec().refresh_ttl


def _open_session(user: User) -> TokenPair:
    """Mint a pair for a verified user and record its refresh hash."""
    pair, expires_at = _mint(user)
    session_ledger().save(user.id, pair.refresh_token_hash, expires_at)
    return pair


def _session_response(user: User, pair: TokenPair, status: int = 200):
    response = jsonify(
        {
            "success": True,
            "user": user_out_schema.dump(user),
            "accessToken": pair.access_token,
        }
    )
    response.status_code = status
    return token_delivery().deliver(response, pair)


@bp.post("/signup")
def signup():
    """
    Register a new user and open a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password, firstName, lastName]
          properties:
            email: { type: string }
            password: { type: string, minLength: 8 }
            firstName: { type: string }
            lastName: { type: string }
            role: { type: string, enum: [student, educator] }
    responses:
      201:
        description: Created; refresh_token and access_token cookies set
      400:
        description: Validation error
      409:
        description: Email already registered
    """
    payload = request.get_json(silent=True) or {}
    data = signup_schema.load(payload)

    user = credential_store().create(
        email=data["email"],
        raw_password=data["password"],
        first_name=data["first_name"],
        last_name=data["last_name"],
        role=Role(data["role"]),
    )
    pair = _open_session(user)

    audit_trail().record(user.id, AuditAction.USER_CREATED, "user", user.id, {"via": "signup"}, client_ip())
    return _session_response(user, pair, 201)


@bp.post("/login")
def login():
    """
    Login with email and password
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (access token in body, both token cookies set)
      401:
        description: Invalid email or password
    """
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)

    user = credential_store().verify_password(data["email"], data["password"])
    if user is None:
        audit_trail().record(
            None, AuditAction.LOGIN_FAILED, "user", None, {"reason": "invalid_credentials"}, client_ip()
        )
        raise InvalidCredentials()

    pair = _open_session(user)
    audit_trail().record(user.id, AuditAction.LOGIN_SUCCESS, "user", user.id, {"method": "password"}, client_ip())
    return _session_response(user, pair)


@bp.post("/refresh")
def refresh():
    """
    Exchange the refresh cookie for a new token pair (rotation).
    The presented refresh token is consumed; presenting it again fails.
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK (both cookies rotated)
      401:
        description: Missing, invalid, expired or already used refresh token
    """
    token = token_delivery().refresh.read(request)
    if not token:
        raise Unauthorized("Refresh token not found")

    codec = token_codec()
    result = codec.verify_refresh_token(token)
    if not result.valid:
        raise InvalidToken()

    claims = result.payload
    token_hash = codec.hash_token(token)

    def successor():
        # runs inside the rotation transaction, after the old record is claimed
        user = credential_store().find_by_id(claims.user_id)
        if user is None:
            raise NotFound()
        pair, expires_at = _mint(user)
        return (user, pair), pair.refresh_token_hash, expires_at

    rotated = session_ledger().rotate(token_hash, claims.user_id, successor)
    if rotated is None:
        revoked = 0
        if current_app.config.get("REVOKE_SESSIONS_ON_REUSE", True):
            revoked = session_ledger().revoke_all(claims.user_id)
        logger.warning(
            "refresh token reuse: user=%s token=%s sessions_revoked=%d",
            claims.user_id, token_hash[:12], revoked,
        )
        audit_trail().record(
            claims.user_id,
            AuditAction.TOKEN_REUSE_DETECTED,
            "auth",
            None,
            {"sessionsRevoked": revoked},
            client_ip(),
        )
        raise TokenReuseDetected()

    user, pair = rotated
    audit_trail().record(user.id, AuditAction.TOKEN_REFRESH, "auth", None, {}, client_ip())
    return _session_response(user, pair)


@bp.post("/logout")
@require_authenticated()
def logout():
    """
    Logout from every device: revokes all refresh tokens of the caller
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out; both cookies cleared
      401:
        description: Unauthorized
    """
    identity = g.identity
    revoked = session_ledger().revoke_all(identity.user_id)

    audit_trail().record(
        identity.user_id,
        AuditAction.LOGOUT,
        "auth",
        None,
        {"allDevices": True, "sessionsRevoked": revoked},
        client_ip(),
    )
    response = jsonify({"success": True, "message": "Logged out successfully"})
    return token_delivery().clear(response)


@bp.get("/me")
@require_authenticated()
def me():
    """
    Current user profile, read from the store (not from token claims).
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User no longer exists
    """
    user = credential_store().find_by_id(g.identity.user_id)
    if user is None:
        raise NotFound()
    return jsonify({"success": True, "user": user_out_schema.dump(user)}), 200


@bp.post("/change-password")
@require_authenticated()
def change_password():
    """
    Change the caller's password; clears mustChangePassword.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            oldPassword: { type: string }
            newPassword: { type: string, minLength: 8 }
    responses:
      200: { description: OK }
      401: { description: Wrong current password }
    """
    payload = request.get_json(silent=True) or {}
    data = change_password_schema.load(payload)

    store = credential_store()
    user = store.find_by_id(g.identity.user_id)
    if user is None:
        raise NotFound()
    if store.verify_password(user.email, data["old_password"]) is None:
        raise InvalidCredentials("Current password is incorrect")

    store.change_password(user.id, data["new_password"])
    audit_trail().record(user.id, AuditAction.PASSWORD_CHANGED, "user", user.id, {}, client_ip())

    user = store.find_by_id(user.id)
    return jsonify({"success": True, "user": user_out_schema.dump(user)}), 200

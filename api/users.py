from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, g, abort

from api.auth import client_ip
from api.extensions import audit_trail, credential_store, session_ledger
from models.audit_log import AuditAction
from models.schemas.user import AdminUserCreateSchema, UserListOutSchema, UserOutSchema
from models.user import Role, creatable_roles
from utils.decorators import require_authenticated, require_role
from utils.exceptions import Forbidden, NotFound

MAX_LIMIT = 100

bp = Blueprint("users", __name__, url_prefix="/admin")

admin_user_create_schema = AdminUserCreateSchema()
user_out_schema = UserOutSchema()
user_list_out_schema = UserListOutSchema(many=True)


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


@bp.get("/users")
@require_authenticated()
@require_role(Role.ADMIN, Role.SUPER_ADMIN)
def list_users():
    """
    List active users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      403: { description: Forbidden }
    """
    page, limit = parse_pagination()
    rows, total = credential_store().list_active(page, limit)
    return jsonify(
        {
            "success": True,
            "users": user_list_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total},
        }
    )


@bp.post("/users")
@require_authenticated()
@require_role(Role.ADMIN, Role.SUPER_ADMIN)
def create_user():
    """
    Admin-only: create an account that must change its password on first use.
    Admins may create student/educator accounts; super admins any role.
    ---
    tags:
      - Users
    security:
      - Bearer: []
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
             firstName: { type: string }
             lastName: { type: string }
             role: { type: string }
    responses:
      201: { description: Created }
      403: { description: Role not assignable by caller }
      409: { description: Email already registered }
    """
    payload = request.get_json(silent=True) or {}
    data = admin_user_create_schema.load(payload)

    role = Role(data["role"])
    if role not in creatable_roles(g.identity.role):
        raise Forbidden(f"You cannot create {role.value} accounts")

    user = credential_store().create(
        email=data["email"],
        raw_password=data["password"],
        first_name=data["first_name"],
        last_name=data["last_name"],
        role=role,
        must_change_password=True,
    )
    audit_trail().record(
        g.identity.user_id,
        AuditAction.USER_CREATED,
        "user",
        user.id,
        {"via": "admin", "role": role.value},
        client_ip(),
    )
    return jsonify({"success": True, "user": user_out_schema.dump(user)}), 201


@bp.delete("/users/<user_id>")
@require_authenticated()
@require_role(Role.ADMIN, Role.SUPER_ADMIN)
def delete_user(user_id: str):
    """Soft delete a user and end all of their sessions."""
    store = credential_store()
    target = store.find_by_id(user_id)
    if target is None:
        raise NotFound()
    # admins only manage accounts they could have created
    if target.role not in creatable_roles(g.identity.role):
        raise Forbidden()

    store.soft_delete(user_id)
    revoked = session_ledger().revoke_all(user_id)
    audit_trail().record(
        g.identity.user_id,
        AuditAction.USER_DELETED,
        "user",
        user_id,
        {"sessionsRevoked": revoked},
        client_ip(),
    )
    return jsonify({"success": True, "message": "User deleted"}), 200

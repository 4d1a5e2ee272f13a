from flask import current_app, has_app_context
from marshmallow import EXCLUDE, Schema, fields, validates, validate, ValidationError

from models.user import Role, SELF_SIGNUP_ROLES

PASSWORD_MIN_LENGTH = 8

_ROLE_VALUES = [r.value for r in Role]


def _check_password(value):
    minimum = PASSWORD_MIN_LENGTH
    if has_app_context():
        minimum = current_app.config.get("PASSWORD_MIN_LENGTH", PASSWORD_MIN_LENGTH)
    if len(value) < minimum:
        raise ValidationError(f"Password must be at least {minimum} characters long.")


class _InputSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class SignupSchema(_InputSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    first_name = fields.String(required=True, data_key="firstName", validate=validate.Length(min=1, max=255))
    last_name = fields.String(required=True, data_key="lastName", validate=validate.Length(min=1, max=255))
    role = fields.String(
        load_default=Role.STUDENT.value,
        validate=validate.OneOf([r.value for r in SELF_SIGNUP_ROLES]),
    )

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class LoginSchema(_InputSchema):
    email = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class ChangePasswordSchema(_InputSchema):
    old_password = fields.String(required=True, load_only=True, data_key="oldPassword")
    new_password = fields.String(required=True, load_only=True, data_key="newPassword")

    @validates("new_password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class AdminUserCreateSchema(_InputSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    first_name = fields.String(required=True, data_key="firstName", validate=validate.Length(min=1, max=255))
    last_name = fields.String(required=True, data_key="lastName", validate=validate.Length(min=1, max=255))
    role = fields.String(required=True, validate=validate.OneOf(_ROLE_VALUES))

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class UserOutSchema(Schema):
    """Public profile; never includes the password hash."""
    id = fields.String(allow_none=False)
    email = fields.String()
    first_name = fields.String(data_key="firstName")
    last_name = fields.String(data_key="lastName")
    role = fields.Method("get_role")
    must_change_password = fields.Boolean(data_key="mustChangePassword")

    def get_role(self, obj):
        return getattr(obj.role, "value", obj.role)


class UserListOutSchema(UserOutSchema):
    created_at = fields.DateTime(data_key="createdAt")

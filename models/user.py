from enum import Enum

from sqlalchemy import Boolean, Column, Index, String, text
from sqlalchemy.types import Enum as SAEnum

from models.base_model import Base, BaseModel, SoftDeleteMixin
from utils.security import hash_password


class Role(str, Enum):
    STUDENT = "student"
    EDUCATOR = "educator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    def satisfies(self, minimum: "Role") -> bool:
        """True if this role is at least `minimum` (super_admin > admin > educator; student stands alone)."""
        return Role(minimum) in _ROLE_INCLUDES[self]


_ROLE_INCLUDES = {
    Role.SUPER_ADMIN: frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.EDUCATOR}),
    Role.ADMIN: frozenset({Role.ADMIN, Role.EDUCATOR}),
    Role.EDUCATOR: frozenset({Role.EDUCATOR}),
    Role.STUDENT: frozenset({Role.STUDENT}),
}

# Roles a user may pick for themselves at signup
SELF_SIGNUP_ROLES = (Role.STUDENT, Role.EDUCATOR)


def creatable_roles(creator: Role) -> tuple:
    """Roles an administrator of the given role may assign to a new account."""
    if Role(creator) is Role.SUPER_ADMIN:
        return tuple(Role)
    if Role(creator).satisfies(Role.ADMIN):
        return SELF_SIGNUP_ROLES
    return ()


class User(SoftDeleteMixin, BaseModel, Base):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    role = Column(
        SAEnum(Role, name="user_role", native_enum=False, values_callable=lambda e: [r.value for r in e]),
        nullable=False,
        default=Role.STUDENT,
    )
    must_change_password = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        # email is unique among active users only; a soft-deleted address can be reused
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @password.setter
    def password(self, raw_password):
        self.password_hash = hash_password(raw_password)

    def __repr__(self):
        return f"<User id={self.id} role={getattr(self.role, 'value', self.role)}>"

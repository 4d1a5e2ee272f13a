"""
Credential store: persisted users and their password hashes.

Soft-deleted users are excluded from every lookup here, so login, refresh
and whoami all treat them as nonexistent.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from models.base_model import utcnow
from models.user import Role, User
from utils.exceptions import AlreadyExists
from utils.security import verify_password


class CredentialStore:
    def __init__(self, storage):
        self.storage = storage

    def _active(self):
        session = self.storage.get_session()
        return session.query(User).filter(User.deleted_at.is_(None))

    def find_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return self._active().filter(User.email == email).first()

    def find_by_id(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        return self._active().filter(User.id == user_id).first()

    def create(
        self,
        email: str,
        raw_password: str,
        first_name: str,
        last_name: str,
        role=Role.STUDENT,
        must_change_password: bool = False,
    ) -> User:
        """Create a user; raises AlreadyExists if an active user holds the email."""
        if self.find_by_email(email):
            raise AlreadyExists()

        user = User(
            email=email,
            password=raw_password,
            first_name=first_name,
            last_name=last_name,
            role=Role(role),
            must_change_password=must_change_password,
        )
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError:
            # lost a race with a concurrent signup for the same email
            raise AlreadyExists()
        return user

    def verify_password(self, email: str, raw_password: str) -> Optional[User]:
        """Return the user when the password matches, otherwise None (never says which part failed)."""
        user = self.find_by_email(email)
        if user is None or not raw_password:
            return None
        if not verify_password(raw_password, user.password_hash):
            return None
        return user

    def change_password(self, user_id: str, new_raw_password: str) -> None:
        user = self.find_by_id(user_id)
        if user is None:
            return
        user.password = new_raw_password
        user.must_change_password = False
        user.updated_at = utcnow()
        self.storage.new(user)
        self.storage.save()

    def soft_delete(self, user_id: str) -> bool:
        user = self.find_by_id(user_id)
        if user is None:
            return False
        user.soft_delete()
        self.storage.new(user)
        self.storage.save()
        return True

    def list_active(self, page: int, limit: int) -> Tuple[List[User], int]:
        query = self._active()
        total = query.count()
        rows = (
            query.order_by(User.created_at.desc(), User.email.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

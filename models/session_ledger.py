"""
Session ledger: the refresh_tokens table is the single source of truth for
which sessions are alive.

A record is live iff it exists, revoked_at is NULL and expires_at is in the
future. Once revoked or expired it stays dead.

Rotation (rotate) claims the old record with one conditional UPDATE and only
then inserts its successor, inside the same transaction. Two requests racing
with the same refresh token cannot both see a row affected, so exactly one of
them rotates. No in-process lock is involved; the guarantee comes from the
database.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Tuple, TypeVar

from sqlalchemy import update

from models.base_model import utcnow
from models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)

T = TypeVar("T")

# successor() returns (value to hand back, new token hash, new expiry)
Successor = Callable[[], Tuple[T, str, datetime]]


class SessionLedger:
    def __init__(self, storage):
        self.storage = storage

    def save(self, user_id: str, token_hash: str, expires_at: datetime, commit: bool = True) -> None:
        self.storage.new(RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at))
        if commit:
            self.storage.save()

    def is_live(self, user_id: str, token_hash: str) -> bool:
        session = self.storage.get_session()
        row = (
            session.query(RefreshToken.id)
            .filter(
                RefreshToken.user_id == user_id,
                RefreshToken.token_hash == token_hash,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > utcnow(),
            )
            .first()
        )
        return row is not None

    def revoke(self, token_hash: str) -> None:
        """Revoke one record; a no-op if it is already revoked or unknown."""
        session = self.storage.get_session()
        session.execute(
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=utcnow())
        )
        self.storage.save()

    def revoke_all(self, user_id: str) -> int:
        """Revoke every live record of the user (all devices). Returns how many were live."""
        session = self.storage.get_session()
        result = session.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=utcnow())
        )
        self.storage.save()
        return result.rowcount or 0

    def rotate(self, token_hash: str, user_id: str, successor: Successor) -> Optional[T]:
        """
        Consume the live record for token_hash and persist its successor atomically.

        Returns None (and changes nothing) when the record is already revoked,
        expired, unknown or owned by someone else. Otherwise calls successor()
        (which must not commit), stores the new hash and commits. Anything raised
        by successor() or the insert rolls the whole rotation back.
        """
        session = self.storage.get_session()
        now = utcnow()
        try:
            result = session.execute(
                update(RefreshToken)
                .where(
                    RefreshToken.token_hash == token_hash,
                    RefreshToken.user_id == user_id,
                    RefreshToken.revoked_at.is_(None),
                    RefreshToken.expires_at > now,
                )
                .values(revoked_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                return None

            value, new_hash, expires_at = successor()
            self.save(user_id, new_hash, expires_at, commit=False)
            session.commit()
        except Exception:
            session.rollback()
            logger.warning("refresh rotation rolled back for token %s", token_hash[:12])
            raise
        return value


"""
RefreshToken model: one row per issued refresh token, keyed by its SHA-256 hash.
The raw token is never stored.
Fields:
- user_id (String(36)) - FK to users.id
- token_hash (unique)
- expires_at
- revoked_at (null while the session is live)
"""
from sqlalchemy import Column, String, DateTime, ForeignKey

from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<RefreshToken hash={self.token_hash[:12]} revoked={self.revoked_at is not None}>"

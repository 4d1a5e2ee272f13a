"""
Audit trail: append-only log of security events.

Writes are best effort. A failure is logged and rolled back, never raised, so
it cannot change the outcome of the operation being audited. Callers commit
their own work before recording.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from models.audit_log import AuditAction, AuditLog

logger = logging.getLogger(__name__)

UNKNOWN_USER = "unknown"


class AuditTrail:
    def __init__(self, storage):
        self.storage = storage

    def record(
        self,
        user_id: Optional[str],
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> bool:
        entry = AuditLog(
            user_id=user_id or UNKNOWN_USER,
            action=AuditAction(action).value,
            resource_type=resource_type,
            resource_id=resource_id,
            changes=changes or {},
            ip_address=ip_address or "unknown",
        )
        try:
            self.storage.new(entry)
            self.storage.save()
        except Exception:
            logger.exception("audit write failed: action=%s user=%s", entry.action, entry.user_id)
            try:
                self.storage.rollback()
            except Exception:
                logger.exception("audit rollback failed")
            return False
        return True

    def entries(self, user_id: Optional[str] = None, action: Optional[AuditAction] = None) -> List[AuditLog]:
        session = self.storage.get_session()
        query = session.query(AuditLog)
        if user_id:
            query = query.filter(AuditLog.user_id == user_id)
        if action:
            query = query.filter(AuditLog.action == AuditAction(action).value)
        return query.order_by(AuditLog.created_at.asc()).all()

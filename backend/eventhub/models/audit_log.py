"""
Append-only audit trail of admin and attendee actions.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index, func

from eventhub.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    actor_user_id = Column(Integer, nullable=True)
    actor_role = Column(String(32), nullable=False)
    action = Column(String(100), nullable=False)
    entity_type = Column(String(64), nullable=False)
    entity_id = Column(String(64), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_audit_logs_created_at", "created_at"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

"""
Append-only archive tables.

Rows are denormalized snapshots taken right before the live rows are
deleted, so they stay readable after the referenced user or event changes
or disappears. No foreign keys on purpose.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Text, Index, func

from eventhub.db.base import Base


class ArchivedRegistration(Base):
    __tablename__ = "archived_registrations"

    id = Column(Integer, primary_key=True)
    registration_id = Column(Integer, nullable=True)
    event_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=False)
    status = Column(String(32), nullable=False)
    registered_at = Column(DateTime(timezone=True), nullable=True)
    user_name = Column(String(255), nullable=True)
    user_email = Column(String(255), nullable=True)
    event_title = Column(String(255), nullable=True)
    event_date = Column(Date, nullable=True)
    event_time = Column(String(32), nullable=True)
    event_location = Column(String(255), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_by = Column(Integer, nullable=True)
    deletion_source = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_archived_registrations_deleted_at", "deleted_at"),
        Index("ix_archived_registrations_event_id", "event_id"),
        Index("ix_archived_registrations_user_id", "user_id"),
        Index("ix_archived_registrations_registration_id", "registration_id"),
    )


class ArchivedUser(Base):
    __tablename__ = "archived_users"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False)
    company = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    bio = Column(Text, nullable=True)
    created_at_original = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_by = Column(Integer, nullable=True)
    deletion_source = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_archived_users_deleted_at", "deleted_at"),
        Index("ix_archived_users_user_id", "user_id"),
        Index("ix_archived_users_email", "email"),
    )

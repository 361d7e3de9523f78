"""
User model. Credentials are owned by the external auth service; the
hashed password is only kept so an archived user can be restored intact.
"""

from sqlalchemy import Column, Integer, String, Boolean, Text, CheckConstraint

from eventhub.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, default="attendee")  # admin, attendee
    company = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    bio = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'attendee')", name="check_user_role"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

"""
Users (principals) of the API
"""
from sqlalchemy import Column, DateTime, Enum, String
import enum

from .base import Base, generate_uuid, utcnow


class UserRole(str, enum.Enum):
    USER = "user"
    GUIDE = "guide"
    LEAD_GUIDE = "lead-guide"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    photo = Column(String(255), nullable=True)
    role = Column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e], name="user_role"),
        nullable=False,
        default=UserRole.USER,
    )

    # bcrypt hash only, the plaintext never reaches this table
    password_hash = Column(String(255), nullable=False)
    password_changed_at = Column(DateTime, nullable=True)

    # HMAC digest of the outstanding reset token
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.email}>"

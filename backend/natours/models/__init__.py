"""
SQLAlchemy models
"""
from .base import Base, utcnow
from .tour import Tour, TourDifficulty
from .user import User, UserRole

__all__ = [
    "Base",
    "utcnow",

    # Tour
    "Tour",
    "TourDifficulty",

    # User
    "User",
    "UserRole",
]

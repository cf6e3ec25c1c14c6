"""
Kernel Data Models

SQLAlchemy models backing the identity core.
"""

from vidtube.kernel.models.base import Base, TimestampMixin, generate_uuid
from vidtube.kernel.models.user import User

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    # User
    "User",
]

"""SQLAlchemy declarative base and mixins shared by service models."""

from src.servicekit.models.base import Base, SoftDeleteMixin, TimestampMixin, utcnow

__all__ = [
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "utcnow",
]

"""Repository layer for database operations."""

from src.servicekit.repositories.base import BaseRepository, ModelType
from src.servicekit.repositories.transactional import TransactionalRepository

__all__ = [
    "BaseRepository",
    "ModelType",
    "TransactionalRepository",
]

"""Relational database bootstrap."""

from src.servicekit.db.connection import DatabaseConnection, connect
from src.servicekit.db.drivers import MariaDBDriver, PostgresDriver, SQLDriver, get_driver

__all__ = [
    "DatabaseConnection",
    "connect",
    "SQLDriver",
    "PostgresDriver",
    "MariaDBDriver",
    "get_driver",
]

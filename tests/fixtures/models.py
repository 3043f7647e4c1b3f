"""Models used by the database tests."""
from typing import List, Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.servicekit.models import Base, SoftDeleteMixin, TimestampMixin


class Account(TimestampMixin, SoftDeleteMixin, Base):
    """Soft-deletable model with a unique column and a relationship."""

    __tablename__ = "test_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    balance: Mapped[int] = mapped_column(default=0)

    addresses: Mapped[List["Address"]] = relationship(back_populates="account")


class Address(Base):
    __tablename__ = "test_addresses"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("test_accounts.id"))
    city: Mapped[str] = mapped_column(String(100))

    account: Mapped[Account] = relationship(back_populates="addresses")


class Note(Base):
    """Plain model without soft delete."""

    __tablename__ = "test_notes"

    id: Mapped[int] = mapped_column(primary_key=True)
    body: Mapped[str] = mapped_column(String(500))

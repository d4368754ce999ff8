"""
SQLAlchemy ORM models for persistent storage.

Models mirror the dataclass models but add database persistence.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserCollectionDB(Base):
    """
    Owned quantities of one card identity for one user.

    The collection of a user is the set of their rows. Rows whose four
    counters are all zero are deleted rather than stored.
    """

    __tablename__ = "user_collections"
    __table_args__ = (UniqueConstraint("user_id", "card_name", name="uq_user_card"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    card_name: Mapped[str] = mapped_column(String(255))
    regular_count: Mapped[int] = mapped_column(Integer, default=0)
    foil_count: Mapped[int] = mapped_column(Integer, default=0)
    enchanted_count: Mapped[int] = mapped_column(Integer, default=0)
    special_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<UserCollectionDB(user_id={self.user_id}, card={self.card_name})>"


class UserDeckDB(Base):
    """
    A user's deck.

    Cards are stored as JSON [{"id": <print id>, "quantity": n}] and
    resolved against the catalog when loaded.
    """

    __tablename__ = "user_decks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cards: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<UserDeckDB(id={self.id}, name={self.name})>"

"""SQLAlchemy ORM model for the usernames table.

Table is created by Alembic migration: alembic/versions/007_create_usernames.py
Migration 007 owns the table; this file is a pure Python mapping.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base


class UsernameModel(Base):
    __tablename__ = "usernames"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    username: Mapped[str] = mapped_column(String(20), nullable=False)
    # Uniqueness is case-insensitive: "Alice" and "alice" collide
    username_lower: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    change_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )

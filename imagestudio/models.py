"""
SQLAlchemy models for the device-local history database.

Tables:
- history: one row per generation attempt (success or failure)
"""

from sqlalchemy import JSON, BigInteger, Column, Index, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class HistoryEntry(Base):
    """A persisted generation attempt.

    Rows are written once and never updated; ``created_at`` (epoch
    milliseconds) is used only for newest-first ordering.
    """

    __tablename__ = "history"

    id = Column(String(64), primary_key=True)
    prompt = Column(Text, nullable=False)
    model = Column(String(200), nullable=False)
    images = Column(JSON, nullable=False, default=list)  # [{"url": ...} | {"b64_json": ...}]
    error = Column(Text, nullable=True)
    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (Index("ix_history_created_at", "created_at"),)

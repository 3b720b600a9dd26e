"""
Data model for the persistent cache store.
"""
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from simu.core.database import Base


class CacheEntry(Base):
    """Serialized value stored under a cache key until expires_at."""

    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<CacheEntry(key={self.key}, expires_at={self.expires_at})>"

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from database import db


class ScoreEntry(db.Model):
    """Raw key/value row behind the score ledger.

    The value is kept as text; the ledger coerces it back to an integer and
    treats anything unreadable as zero.
    """

    __tablename__ = "scores"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "key": self.key,
            "value": self.value,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


__all__ = [
    "db",
    "ScoreEntry",
]

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import ScoreEntry, db

logger = logging.getLogger(__name__)

DEFAULT_SCORE_KEY = "score"


def coerce_score(raw) -> int:
    """Stored values that are not a non-negative integer count as zero."""
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    if isinstance(raw, str):
        try:
            return max(int(raw.strip()), 0)
        except ValueError:
            return 0
    return 0


class MemoryScoreStore:
    def __init__(self, initial: Optional[Dict[str, object]] = None):
        self.values: Dict[str, object] = dict(initial or {})

    def get(self, key: str):
        return self.values.get(key)

    def set(self, key: str, value: int) -> None:
        self.values[key] = value


class JsonFileScoreStore:
    """Keeps scores in a small JSON object on disk."""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> Dict[str, object]:
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Score file %s is unreadable; starting from zero", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str):
        return self._read().get(key)

    def set(self, key: str, value: int) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle)


class SqlScoreStore:
    """Score rows in the ``scores`` table. Needs an active app context."""

    def get(self, key: str):
        try:
            entry = db.session.get(ScoreEntry, key)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to read score key=%s", key)
            return None
        return entry.value if entry else None

    def set(self, key: str, value: int) -> None:
        try:
            entry = db.session.get(ScoreEntry, key)
            if entry is None:
                entry = ScoreEntry(key=key)
                db.session.add(entry)
            entry.value = str(value)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise


class ScoreLedger:
    """Running score. The in-memory value is authoritative for the session;
    writes to the store are best effort.
    """

    def __init__(self, store, key: str = DEFAULT_SCORE_KEY):
        self.store = store
        self.key = key
        self._value = coerce_score(self._load())

    def _load(self):
        try:
            return self.store.get(self.key)
        except Exception:  # noqa: BLE001 - the store is advisory
            logger.exception("Failed to load score key=%s", self.key)
            return None

    def _persist(self) -> None:
        try:
            self.store.set(self.key, self._value)
        except Exception:  # noqa: BLE001 - the store is advisory
            logger.exception("Failed to persist score key=%s value=%s", self.key, self._value)

    @property
    def value(self) -> int:
        return self._value

    def increment(self, amount: int = 1) -> int:
        if amount <= 0:
            return self._value
        self._value += amount
        self._persist()
        return self._value

    def reset(self) -> int:
        self._value = 0
        self._persist()
        return self._value

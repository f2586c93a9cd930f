from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Caminho do arquivo atual (ex: /MuskiGuess/backend/settings.py)
BASE_DIR = Path(__file__).resolve().parent

# Caminho da raiz do projeto
ROOT_DIR = BASE_DIR.parent

DATA_DIR = BASE_DIR / "data"
DEFAULT_DICTIONARY_FILE = DATA_DIR / "palavras.json"

BOARD_COUNTS = (1, 2, 4)


@dataclass(frozen=True)
class GameSettings:
    word_length: int = 5
    max_tries: Dict[int, int] = field(default_factory=lambda: {1: 6, 2: 7, 4: 9})
    advance_delay: float = 3.0
    draw_budget: int = 2000
    dictionary_file: Path = DEFAULT_DICTIONARY_FILE
    database_url: Optional[str] = None
    secret_key: str = "change-me-in-production"
    port: int = 5000

    def tries_for(self, board_count: int) -> int:
        return self.max_tries.get(board_count, self.max_tries[1])


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s=%r is below %s; using %s", name, raw, minimum, default)
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s", name, raw, default)
        return default
    return max(value, 0.0)


def load_settings() -> GameSettings:
    """Build settings from the environment, reading ``.env`` at the project root first."""
    load_dotenv(ROOT_DIR / ".env")
    defaults = GameSettings()
    return GameSettings(
        word_length=_env_int("WORD_LENGTH", defaults.word_length),
        max_tries={
            1: _env_int("MAX_TRIES_CLASSIC", defaults.max_tries[1]),
            2: _env_int("MAX_TRIES_DUPLETO", defaults.max_tries[2]),
            4: _env_int("MAX_TRIES_QUAPLETO", defaults.max_tries[4]),
        },
        advance_delay=_env_float("STAGE_ADVANCE_DELAY", defaults.advance_delay),
        draw_budget=_env_int("DISTINCT_DRAW_BUDGET", defaults.draw_budget),
        dictionary_file=Path(os.environ.get("DICTIONARY_FILE") or defaults.dictionary_file),
        database_url=os.environ.get("DATABASE_URL") or None,
        secret_key=os.environ.get("SECRET_KEY", defaults.secret_key),
        port=_env_int("PORT", defaults.port),
    )

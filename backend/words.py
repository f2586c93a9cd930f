from __future__ import annotations

import json
import logging
import random
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from utils import normalize

logger = logging.getLogger(__name__)

DEFAULT_WORD_LENGTH = 5
DEFAULT_DRAW_BUDGET = 2000


class EmptyDictionaryError(RuntimeError):
    """Raised when a word is requested from a dictionary with no entries."""


@dataclass(frozen=True)
class WordEntry:
    word: str
    hint: str = ""

    @property
    def normalized(self) -> str:
        return normalize(self.word)

    def to_dict(self) -> Dict[str, str]:
        return {"word": self.word, "hint": self.hint}


class Dictionary:
    """Known answer words, keyed by their normalized form.

    Entries whose normalized word does not have ``word_length`` letters are
    dropped at construction, so every drawn answer satisfies the board length.
    Later duplicates of an already-known normalized word are ignored for
    lookup but kept out of the random pool as well.
    """

    def __init__(
        self,
        entries: Iterable[WordEntry],
        *,
        word_length: int = DEFAULT_WORD_LENGTH,
        rng: Optional[random.Random] = None,
        draw_budget: int = DEFAULT_DRAW_BUDGET,
    ):
        self.word_length = word_length
        self.draw_budget = draw_budget
        self._rng = rng or random.Random()
        self._by_word: Dict[str, WordEntry] = {}
        self._entries: List[WordEntry] = []
        for entry in entries:
            key = entry.normalized
            if len(key) != word_length or not key.isalpha():
                logger.warning("Ignoring %r: expected %d letters", entry.word, word_length)
                continue
            if key in self._by_word:
                logger.debug("Ignoring repeated word %r", entry.word)
                continue
            self._by_word[key] = entry
            self._entries.append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, word) -> bool:
        return self.contains(normalize(word))

    @property
    def entries(self) -> Sequence[WordEntry]:
        return tuple(self._entries)

    def contains(self, normalized_word: str) -> bool:
        return normalized_word in self._by_word

    def lookup(self, word: str) -> Optional[WordEntry]:
        return self._by_word.get(normalize(word))

    def pick_random(self) -> WordEntry:
        if not self._entries:
            raise EmptyDictionaryError("Nenhuma palavra disponível no dicionário.")
        return self._rng.choice(self._entries)

    def pick_random_distinct(self, count: int) -> List[WordEntry]:
        """Draw ``count`` entries, avoiding repeated words while the budget lasts.

        A dictionary smaller than ``count`` still yields ``count`` entries; the
        remainder is padded with plain random picks.
        """
        picked: List[WordEntry] = []
        seen = set()
        draws = 0
        while len(picked) < count and draws < self.draw_budget:
            entry = self.pick_random()
            draws += 1
            if entry.normalized in seen:
                continue
            seen.add(entry.normalized)
            picked.append(entry)
        if len(picked) < count:
            logger.warning(
                "Only %d distinct words after %d draws; padding %d board(s) with repeats",
                len(picked), draws, count - len(picked),
            )
        while len(picked) < count:
            picked.append(self.pick_random())
        return picked


def _coerce_entry(raw) -> Optional[WordEntry]:
    if isinstance(raw, str):
        return WordEntry(word=raw.strip())
    if isinstance(raw, dict):
        word = raw.get("word")
        if not isinstance(word, str) or not word.strip():
            return None
        hint = raw.get("hint") or ""
        return WordEntry(word=word.strip(), hint=str(hint).strip())
    return None


def load_entries(path) -> List[WordEntry]:
    """Read a ``{"items": [{"word": ..., "hint": ...}]}`` word bank.

    A bare JSON list of entries (or of strings) is accepted as well. Malformed
    items are skipped with a warning; a missing file yields an empty list.
    """
    file_path = Path(path)
    try:
        with file_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        logger.error("Arquivo %s não encontrado", file_path)
        return []
    except json.JSONDecodeError:
        logger.exception("Erro ao ler o banco de palavras %s", file_path)
        return []
    items = data.get("items", []) if isinstance(data, dict) else data
    if not isinstance(items, list):
        logger.error("Banco de palavras %s sem lista de itens", file_path)
        return []
    entries: List[WordEntry] = []
    for raw in items:
        entry = _coerce_entry(raw)
        if entry is None:
            logger.warning("Entrada inválida ignorada: %r", raw)
            continue
        entries.append(entry)
    logger.info("Carregadas %d palavras de %s", len(entries), file_path.name)
    return entries


def load_dictionary(path, **kwargs) -> Dictionary:
    return Dictionary(load_entries(path), **kwargs)


def audit_entries(entries: Iterable[WordEntry], word_length: int = DEFAULT_WORD_LENGTH) -> Dict[str, List[str]]:
    """Report repeated, accented and wrong-length words of a word bank."""
    words = [entry.word.strip().lower() for entry in entries if entry.word.strip()]
    counts = Counter(normalize(word) for word in words)
    repeated = sorted(word for word, qty in counts.items() if qty > 1)
    accented = sorted({word for word in words if normalize(word) != word})
    wrong_length = sorted({word for word in words if len(normalize(word)) != word_length})
    return {
        "repeated": repeated,
        "accented": accented,
        "wrong_length": wrong_length,
    }

import enum
from collections import Counter

from utils import normalize


class LetterStatus(enum.IntEnum):
    """Per-letter feedback. Higher values win when statuses are merged."""

    UNUSED = 0
    ABSENT = 1
    PRESENT = 2
    CORRECT = 3

    @property
    def color(self):
        return _COLORS[self]


_COLORS = {
    LetterStatus.UNUSED: None,
    LetterStatus.ABSENT: 'gray',
    LetterStatus.PRESENT: 'yellow',
    LetterStatus.CORRECT: 'green',
}


def evaluate(guess_raw, answer_word):
    """Score a guess against one answer, Wordle rules.

    Exact matches are marked first and never enter the pool of remaining
    answer letters; misplaced letters then consume that pool one occurrence at
    a time, so a letter is never marked more often than it occurs in the
    answer. The result always has one status per answer letter.
    """
    guess = normalize(guess_raw)
    answer = normalize(answer_word)
    statuses = [LetterStatus.ABSENT] * len(answer)
    remaining = Counter()

    # Primeiro: verdes
    for i, letter in enumerate(answer):
        if i < len(guess) and guess[i] == letter:
            statuses[i] = LetterStatus.CORRECT
        else:
            remaining[letter] += 1

    # Segundo: amarelos e cinzas
    for i in range(min(len(guess), len(answer))):
        if statuses[i] is LetterStatus.CORRECT:
            continue
        if remaining[guess[i]] > 0:
            statuses[i] = LetterStatus.PRESENT
            remaining[guess[i]] -= 1
    return statuses


def check_guess_statuses(guess_raw, statuses):
    """Return a list of {letter, status} dicts for the web UI, one per position."""
    letters = [c.upper() for c in normalize(guess_raw)]
    return [{"letter": letter, "status": status.color} for letter, status in zip(letters, statuses)]


def is_solved(statuses):
    return bool(statuses) and all(status is LetterStatus.CORRECT for status in statuses)

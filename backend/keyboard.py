from typing import Dict, Iterable

from ledger import Attempt
from termo import LetterStatus


def aggregate(attempts: Iterable[Attempt]) -> Dict[str, LetterStatus]:
    """Best status ever seen for each typed letter, across all boards.

    Letters never typed are left out; callers treat them as UNUSED.
    """
    keyboard: Dict[str, LetterStatus] = {}
    for attempt in attempts:
        guess = attempt.normalized
        for statuses in attempt.evaluations:
            for letter, status in zip(guess, statuses):
                if status > keyboard.get(letter, LetterStatus.UNUSED):
                    keyboard[letter] = status
    return keyboard


def status_of(keyboard: Dict[str, LetterStatus], letter: str) -> LetterStatus:
    return keyboard.get(letter, LetterStatus.UNUSED)


def keyboard_payload(keyboard: Dict[str, LetterStatus]) -> Dict[str, str]:
    return {letter.upper(): status.color for letter, status in sorted(keyboard.items())}

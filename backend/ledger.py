from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from termo import LetterStatus, check_guess_statuses, evaluate
from utils import normalize
from words import Dictionary, WordEntry


class Rejection(str, enum.Enum):
    """Reasons a submitted guess is refused. The ledger is untouched on any of them."""

    EMPTY_DICTIONARY = "empty_dictionary"
    STAGE_OVER = "stage_over"
    BUSY = "busy"
    INVALID_LENGTH = "invalid_length"
    UNKNOWN_WORD = "unknown_word"
    DUPLICATE_GUESS = "duplicate_guess"


@dataclass
class Board:
    answer: WordEntry
    solved: bool = False

    def to_dict(self, reveal: bool = False) -> Dict[str, object]:
        return {
            "hint": self.answer.hint,
            "solved": self.solved,
            "answer": self.answer.word.upper() if (reveal or self.solved) else None,
        }


@dataclass(frozen=True)
class Attempt:
    """One accepted guess.

    ``evaluations[k]`` scores the guess against board ``board_indices[k]``;
    only boards still unsolved at submission time get an entry.
    """

    guess_raw: str
    evaluations: Tuple[Tuple[LetterStatus, ...], ...]
    board_indices: Tuple[int, ...]

    @property
    def normalized(self) -> str:
        return normalize(self.guess_raw)

    def evaluation_for(self, board_index: int) -> Optional[Tuple[LetterStatus, ...]]:
        for index, statuses in zip(self.board_indices, self.evaluations):
            if index == board_index:
                return statuses
        return None

    def to_dict(self) -> Dict[str, object]:
        return {
            "guess": self.guess_raw.upper(),
            "feedback": [
                {"board": index, "letters": check_guess_statuses(self.guess_raw, statuses)}
                for index, statuses in zip(self.board_indices, self.evaluations)
            ],
        }


@dataclass(frozen=True)
class SubmitResult:
    attempt: Optional[Attempt] = None
    solved_indices: Tuple[int, ...] = ()
    rejection: Optional[Rejection] = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None


@dataclass
class AttemptLedger:
    """Attempts of a single stage, in submission order."""

    dictionary: Dictionary
    max_tries: int
    attempts: List[Attempt] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.attempts)

    @property
    def word_length(self) -> int:
        return self.dictionary.word_length

    @property
    def exhausted(self) -> bool:
        return len(self.attempts) >= self.max_tries

    def has_guessed(self, normalized_guess: str) -> bool:
        return any(attempt.normalized == normalized_guess for attempt in self.attempts)

    def validate(self, guess_raw: str, boards: Sequence[Board] = ()) -> Optional[Rejection]:
        guess = normalize(guess_raw)
        if self.exhausted or (boards and all(board.solved for board in boards)):
            return Rejection.STAGE_OVER
        if len(guess) != self.word_length or not guess.isalpha():
            return Rejection.INVALID_LENGTH
        if not self.dictionary.contains(guess):
            return Rejection.UNKNOWN_WORD
        if self.has_guessed(guess):
            return Rejection.DUPLICATE_GUESS
        return None

    def submit(self, guess_raw: str, boards: Sequence[Board]) -> SubmitResult:
        """Evaluate ``guess_raw`` against every unsolved board and record it.

        Boards whose answer matches the guess are flipped to solved in place.
        """
        rejection = self.validate(guess_raw, boards)
        if rejection is not None:
            return SubmitResult(rejection=rejection)

        guess = normalize(guess_raw)
        evaluations = []
        indices = []
        solved = []
        for index, board in enumerate(boards):
            if board.solved:
                continue
            evaluations.append(tuple(evaluate(guess, board.answer.word)))
            indices.append(index)
            if board.answer.normalized == guess:
                board.solved = True
                solved.append(index)

        attempt = Attempt(
            guess_raw=guess_raw.strip(),
            evaluations=tuple(evaluations),
            board_indices=tuple(indices),
        )
        self.attempts.append(attempt)
        return SubmitResult(attempt=attempt, solved_indices=tuple(solved))

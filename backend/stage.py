from __future__ import annotations

import enum
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from keyboard import aggregate, keyboard_payload
from ledger import Attempt, AttemptLedger, Board, Rejection, SubmitResult
from messages import Message, MessageCode
from score_service import ScoreLedger
from settings import BOARD_COUNTS, GameSettings
from termo import LetterStatus, evaluate
from utils import normalize
from words import Dictionary, EmptyDictionaryError

logger = logging.getLogger(__name__)


class GameMode(str, enum.Enum):
    """Board-count modes, cycled on every fully won stage."""

    CLASSIC = "classic"
    DUPLETO = "dupleto"
    QUAPLETO = "quapleto"

    @property
    def board_count(self) -> int:
        return _BOARD_COUNTS[self]

    @classmethod
    def for_board_count(cls, board_count: int) -> "GameMode":
        for mode, count in _BOARD_COUNTS.items():
            if count == board_count:
                return mode
        raise ValueError(f"Unsupported board count: {board_count}")


_BOARD_COUNTS = {
    GameMode.CLASSIC: 1,
    GameMode.DUPLETO: 2,
    GameMode.QUAPLETO: 4,
}

NEXT_BOARD_COUNT = {1: 2, 2: 4, 4: 1}

_REJECTION_MESSAGES = {
    Rejection.EMPTY_DICTIONARY: MessageCode.EMPTY_DICTIONARY,
    Rejection.STAGE_OVER: MessageCode.STAGE_OVER,
    Rejection.BUSY: MessageCode.BUSY,
    Rejection.INVALID_LENGTH: MessageCode.INVALID_LENGTH,
    Rejection.UNKNOWN_WORD: MessageCode.UNKNOWN_WORD,
    Rejection.DUPLICATE_GUESS: MessageCode.DUPLICATE_GUESS,
}

_HINT_MESSAGES = {
    LetterStatus.CORRECT: MessageCode.HINT_CORRECT,
    LetterStatus.PRESENT: MessageCode.HINT_PRESENT,
    LetterStatus.ABSENT: MessageCode.HINT_ABSENT,
}


# === Deferred actions ===

class ScheduledCall:
    """Handle for a deferred callback; ``cancel`` before it fires to drop it."""

    def __init__(self, callback: Callable[[], None], due: float = 0.0):
        self.callback = callback
        self.due = due
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def fire(self) -> None:
        if not self.pending:
            return
        self.fired = True
        self.callback()


class ManualScheduler:
    """Virtual clock: deferred calls run only when ``advance`` passes their due time."""

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(callback, due=self.now + max(delay, 0.0))
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    @property
    def pending(self) -> List[ScheduledCall]:
        return [call for _, _, call in sorted(self._queue) if call.pending]

    def advance(self, seconds: float) -> int:
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            self.now = max(self.now, due)
            if call.pending:
                call.fire()
                fired += 1
        self.now = target
        return fired

    def run_pending(self) -> int:
        if not self._queue:
            return 0
        latest = max(due for due, _, _ in self._queue)
        return self.advance(max(latest - self.now, 0.0))


class SocketIOScheduler:
    """Runs deferred calls as Flask-SocketIO background tasks."""

    def __init__(self, socketio):
        self.socketio = socketio

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(callback, due=delay)

        def _runner():
            self.socketio.sleep(delay)
            call.fire()

        self.socketio.start_background_task(_runner)
        return call


# === Stage state ===

@dataclass
class StageState:
    """Read-only snapshot handed to the presentation layer."""

    board_count: int
    max_tries: int
    boards: List[Board]
    attempts: List[Attempt]
    is_over: bool
    won: bool
    busy: bool
    buffer: str
    message: Optional[Message]
    score: int
    dictionary_size: int
    generation: int
    keyboard: Dict[str, LetterStatus] = field(default_factory=dict)

    @property
    def mode(self) -> GameMode:
        return GameMode.for_board_count(self.board_count)

    def to_dict(self) -> Dict[str, object]:
        return {
            "mode": self.mode.value,
            "wordCount": self.board_count,
            "maxAttempts": self.max_tries,
            "attempts": len(self.attempts),
            "boards": [board.to_dict(reveal=self.is_over) for board in self.boards],
            "history": [attempt.to_dict() for attempt in self.attempts],
            "tried": [attempt.guess_raw for attempt in reversed(self.attempts)],
            "keyboard": keyboard_payload(self.keyboard),
            "gameOver": self.is_over,
            "won": self.won,
            "busy": self.busy,
            "buffer": self.buffer.upper(),
            "message": self.message.to_dict() if self.message else None,
            "score": self.score,
            "dictionarySize": self.dictionary_size,
            "stage": self.generation,
        }


class StageController:
    """Owns the current stage: boards, attempts, score updates and mode progression.

    All mutation goes through ``start``/``restart``, ``type_letter``,
    ``backspace``, ``submit_guess``, ``settle`` and ``reset_score``. Listeners
    registered with ``subscribe`` receive ``(event, state)`` after each change.
    """

    def __init__(
        self,
        dictionary: Dictionary,
        score: ScoreLedger,
        *,
        settings: Optional[GameSettings] = None,
        scheduler=None,
        board_count: int = 1,
        autostart: bool = True,
    ):
        self.dictionary = dictionary
        self.score = score
        self.settings = settings or GameSettings(word_length=dictionary.word_length)
        self.scheduler = scheduler or ManualScheduler()
        self.board_count = board_count
        self.boards: List[Board] = []
        self.ledger = AttemptLedger(dictionary, self.settings.tries_for(board_count))
        self.is_over = False
        self.won = False
        self.busy = False
        self.buffer = ""
        self.message: Optional[Message] = None
        self.generation = 0
        self._pending: Optional[ScheduledCall] = None
        self._listeners: List[Callable[[str, StageState], None]] = []
        if autostart:
            self.start(board_count)

    # --- observers ---

    def subscribe(self, listener: Callable[[str, StageState], None]) -> None:
        self._listeners.append(listener)

    def _notify(self, event: str) -> None:
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(event, snapshot)
            except Exception:  # noqa: BLE001 - listeners only observe
                logger.exception("Stage listener failed on %s", event)

    # --- snapshots ---

    @property
    def blocked(self) -> bool:
        return not self.boards

    @property
    def attempts(self) -> List[Attempt]:
        return self.ledger.attempts

    @property
    def keyboard(self) -> Dict[str, LetterStatus]:
        return aggregate(self.ledger.attempts)

    @property
    def pending_advance(self) -> Optional[ScheduledCall]:
        if self._pending is not None and self._pending.pending:
            return self._pending
        return None

    @property
    def state(self) -> StageState:
        return StageState(
            board_count=self.board_count,
            max_tries=self.ledger.max_tries,
            boards=[Board(answer=board.answer, solved=board.solved) for board in self.boards],
            attempts=list(self.ledger.attempts),
            is_over=self.is_over,
            won=self.won,
            busy=self.busy,
            buffer=self.buffer,
            message=self.message,
            score=self.score.value,
            dictionary_size=len(self.dictionary),
            generation=self.generation,
            keyboard=self.keyboard,
        )

    # --- stage lifecycle ---

    def start(self, board_count: Optional[int] = None, *, message: Optional[Message] = None) -> StageState:
        if board_count is None:
            board_count = self.board_count
        if board_count not in BOARD_COUNTS:
            raise ValueError(f"Unsupported board count: {board_count}")
        self._cancel_pending()
        self.generation += 1
        self.board_count = board_count
        self.ledger = AttemptLedger(self.dictionary, self.settings.tries_for(board_count))
        self.is_over = False
        self.won = False
        self.busy = False
        self.buffer = ""
        self.message = message
        try:
            entries = self.dictionary.pick_random_distinct(board_count)
        except EmptyDictionaryError:
            logger.error("Cannot start a stage: the dictionary is empty")
            self.boards = []
            self.message = Message.of(MessageCode.EMPTY_DICTIONARY)
        else:
            self.boards = [Board(answer=entry) for entry in entries]
            logger.info("Stage %d started with %d board(s)", self.generation, board_count)
        self._notify("stage_started")
        return self.state

    def restart(self, board_count: Optional[int] = None) -> StageState:
        """Discard the current stage and start over; the score is kept."""
        return self.start(board_count)

    def reset_score(self) -> StageState:
        self.score.reset()
        self._notify("score_changed")
        return self.start(1, message=Message.of(MessageCode.SCORE_RESET))

    def close(self) -> None:
        """Stop the pending auto-advance and detach listeners; the controller is being dropped."""
        self._cancel_pending()
        self._listeners.clear()

    def settle(self) -> None:
        """Called by the presentation layer once the last reveal has finished."""
        self.busy = False

    def _cancel_pending(self) -> None:
        if self._pending is not None and self._pending.pending:
            logger.debug("Cancelling pending auto-advance of stage %d", self.generation)
            self._pending.cancel()
        self._pending = None

    def _schedule_next(self, board_count: int) -> None:
        generation = self.generation

        def _advance():
            if generation != self.generation:
                return
            self._pending = None
            self.start(board_count)

        self._pending = self.scheduler.schedule(self.settings.advance_delay, _advance)

    # --- input buffer ---

    def type_letter(self, letter: str) -> bool:
        char = normalize(letter)
        if self.is_over or len(char) != 1 or not char.isalpha():
            return False
        if len(normalize(self.buffer)) >= self.dictionary.word_length:
            return False
        self.buffer += char
        return True

    def backspace(self) -> bool:
        if not self.buffer or self.is_over:
            return False
        self.buffer = self.buffer[:-1]
        return True

    # --- submissions ---

    def _reject(self, rejection: Rejection, guess: str) -> SubmitResult:
        code = _REJECTION_MESSAGES[rejection]
        if rejection is Rejection.INVALID_LENGTH:
            self.message = Message.of(code, length=self.dictionary.word_length)
        elif rejection is Rejection.DUPLICATE_GUESS:
            self.message = Message.of(code, guess=guess.strip())
        else:
            self.message = Message.of(code)
        logger.debug("Guess %r rejected: %s", guess, rejection.value)
        return SubmitResult(rejection=rejection)

    def submit_guess(self, text: Optional[str] = None) -> SubmitResult:
        """Submit ``text``, or the typed buffer when omitted.

        Checks run in a fixed order: empty dictionary, stage over, busy,
        length, dictionary membership, duplicate guess.
        """
        guess = self.buffer if text is None else (text or "")
        if self.blocked:
            return self._reject(Rejection.EMPTY_DICTIONARY, guess)
        if self.is_over:
            return self._reject(Rejection.STAGE_OVER, guess)
        if self.busy:
            return self._reject(Rejection.BUSY, guess)

        result = self.ledger.submit(guess, self.boards)
        if not result.accepted:
            return self._reject(result.rejection, guess)

        self.busy = True
        self.buffer = ""
        if result.solved_indices:
            self.score.increment(len(result.solved_indices))
            self._notify("score_changed")

        if all(board.solved for board in self.boards):
            self.is_over = True
            self.won = True
            self.message = Message.of(MessageCode.STAGE_WON)
            next_count = NEXT_BOARD_COUNT[self.board_count]
            logger.info("Stage %d won; next stage has %d board(s)", self.generation, next_count)
            self._schedule_next(next_count)
            self._notify("attempt_accepted")
            self._notify("stage_over")
        elif self.ledger.exhausted:
            self.is_over = True
            answers = tuple(board.answer.word.upper() for board in self.boards if not board.solved)
            self.message = Message.of(MessageCode.STAGE_LOST, answers=answers)
            logger.info("Stage %d lost; answers were %s", self.generation, ", ".join(answers))
            self._schedule_next(self.board_count)
            self._notify("attempt_accepted")
            self._notify("stage_over")
        else:
            self.message = self._hint(result.attempt)
            self._notify("attempt_accepted")
        return result

    def _hint(self, attempt: Attempt) -> Message:
        target = next((index for index, board in enumerate(self.boards) if not board.solved), 0)
        statuses = attempt.evaluation_for(target)
        if statuses is None:
            statuses = evaluate(attempt.guess_raw, self.boards[target].answer.word)
        letter = attempt.normalized[-1]
        return Message.of(_HINT_MESSAGES[statuses[-1]], letter=letter)

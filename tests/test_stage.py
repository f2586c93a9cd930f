import random

import pytest

from conftest import wrong_guesses
from ledger import Rejection
from messages import MessageCode
from score_service import MemoryScoreStore, ScoreLedger
from stage import GameMode, ManualScheduler, NEXT_BOARD_COUNT, StageController
from termo import LetterStatus
from words import Dictionary, WordEntry


def test_start_draws_distinct_boards(make_controller):
    controller = make_controller(4)
    assert controller.board_count == 4
    assert len(controller.boards) == 4
    assert len({board.answer.normalized for board in controller.boards}) == 4
    assert not any(board.solved for board in controller.boards)
    assert controller.attempts == []
    assert not controller.is_over
    assert controller.ledger.max_tries == 9


def test_start_rejects_unsupported_board_count(make_controller):
    controller = make_controller(1)
    with pytest.raises(ValueError):
        controller.start(3)


def test_winning_classic_stage(make_controller, score):
    controller = make_controller(1)
    answer = controller.boards[0].answer.word
    result = controller.submit_guess(answer.upper())
    assert result.accepted
    assert result.solved_indices == (0,)
    assert controller.is_over and controller.won
    assert controller.message.code is MessageCode.STAGE_WON
    assert score.value == 1


def test_hint_describes_last_letter(make_controller):
    controller = make_controller(1)
    guess = wrong_guesses(controller, 1)[0]
    result = controller.submit_guess(guess)
    last = result.attempt.evaluations[0][-1]
    expected = {
        LetterStatus.CORRECT: MessageCode.HINT_CORRECT,
        LetterStatus.PRESENT: MessageCode.HINT_PRESENT,
        LetterStatus.ABSENT: MessageCode.HINT_ABSENT,
    }[last]
    assert controller.message.code is expected
    assert dict(controller.message.params)["letter"] == result.attempt.normalized[-1]
    assert not controller.is_over


def test_hint_targets_first_unsolved_board(entries, score, settings, scheduler):
    dictionary = Dictionary(entries, rng=random.Random(3))
    controller = StageController(dictionary, score, settings=settings, scheduler=scheduler, board_count=2)
    first, second = controller.boards
    controller.submit_guess(first.answer.word)
    controller.settle()
    assert first.solved and not second.solved
    result = controller.submit_guess(wrong_guesses(controller, 1)[0])
    expected_status = result.attempt.evaluation_for(1)[-1]
    assert controller.message.code.value.endswith(expected_status.name.lower())


def test_duo_single_board_solved_keeps_stage_running(make_controller, score):
    controller = make_controller(2)
    target = controller.boards[1].answer.word
    result = controller.submit_guess(target)
    assert result.solved_indices == (1,)
    assert controller.boards[1].solved
    assert not controller.boards[0].solved
    assert score.value == 1
    assert not controller.is_over
    assert controller.message.code in {
        MessageCode.HINT_CORRECT, MessageCode.HINT_PRESENT, MessageCode.HINT_ABSENT,
    }


def test_duplicate_guess_is_rejected(make_controller):
    controller = make_controller(1)
    guess = wrong_guesses(controller, 1)[0]
    assert controller.submit_guess(guess).accepted
    controller.settle()
    result = controller.submit_guess(guess.upper())
    assert result.rejection is Rejection.DUPLICATE_GUESS
    assert len(controller.attempts) == 1
    assert controller.message.code is MessageCode.DUPLICATE_GUESS
    assert dict(controller.message.params)["guess"] == guess.upper()


def test_rejections_leave_stage_untouched(make_controller):
    controller = make_controller(1)
    assert controller.submit_guess("abc").rejection is Rejection.INVALID_LENGTH
    assert controller.message.code is MessageCode.INVALID_LENGTH
    assert controller.submit_guess("xxxxx").rejection is Rejection.UNKNOWN_WORD
    assert controller.message.code is MessageCode.UNKNOWN_WORD
    assert controller.attempts == []
    assert not controller.busy


def test_busy_until_settled(make_controller):
    controller = make_controller(1)
    first, second = wrong_guesses(controller, 2)
    assert controller.submit_guess(first).accepted
    assert controller.busy
    assert controller.submit_guess(second).rejection is Rejection.BUSY
    controller.settle()
    assert controller.submit_guess(second).accepted


def test_losing_stage_reveals_all_unsolved_answers(make_controller, settings):
    controller = make_controller(2)
    tries = settings.tries_for(2)
    for guess in wrong_guesses(controller, tries):
        assert controller.submit_guess(guess).accepted
        controller.settle()
    assert controller.is_over and not controller.won
    assert len(controller.attempts) == tries
    assert controller.message.code is MessageCode.STAGE_LOST
    answers = dict(controller.message.params)["answers"]
    assert set(answers) == {board.answer.word.upper() for board in controller.boards}
    for answer in answers:
        assert answer in controller.message.text


def test_submission_after_stage_over(make_controller):
    controller = make_controller(1)
    controller.submit_guess(controller.boards[0].answer.word)
    controller.settle()
    result = controller.submit_guess(wrong_guesses(controller, 1)[0])
    assert result.rejection is Rejection.STAGE_OVER
    assert len(controller.attempts) == 1


def test_full_mode_cycle(make_controller, scheduler, settings):
    controller = make_controller(1)
    seen = []
    for _ in range(3):
        seen.append(controller.board_count)
        for board in list(controller.boards):
            controller.submit_guess(board.answer.word)
            controller.settle()
        assert controller.won
        scheduler.advance(settings.advance_delay)
    assert seen == [1, 2, 4]
    assert controller.board_count == 1
    assert NEXT_BOARD_COUNT == {1: 2, 2: 4, 4: 1}


def test_auto_advance_waits_for_delay(make_controller, scheduler, settings):
    controller = make_controller(1)
    controller.submit_guess(controller.boards[0].answer.word)
    scheduler.advance(settings.advance_delay / 2)
    assert controller.is_over
    scheduler.advance(settings.advance_delay / 2)
    assert not controller.is_over
    assert controller.board_count == 2
    assert not controller.busy


def test_loss_restarts_same_board_count(make_controller, scheduler, settings):
    controller = make_controller(4)
    generation = controller.generation
    for guess in wrong_guesses(controller, settings.tries_for(4)):
        controller.submit_guess(guess)
        controller.settle()
    assert controller.is_over
    scheduler.advance(settings.advance_delay)
    assert controller.board_count == 4
    assert controller.generation == generation + 1
    assert controller.attempts == []


def test_restart_cancels_pending_auto_advance(make_controller, scheduler, settings):
    controller = make_controller(1)
    controller.submit_guess(controller.boards[0].answer.word)
    pending = controller.pending_advance
    assert pending is not None
    controller.restart(1)
    assert pending.cancelled
    generation = controller.generation
    scheduler.advance(settings.advance_delay * 2)
    assert controller.generation == generation
    assert controller.board_count == 1


def test_stale_callback_does_not_start_second_stage(make_controller, scheduler, settings):
    controller = make_controller(1)
    controller.submit_guess(controller.boards[0].answer.word)
    pending = controller.pending_advance
    controller.restart(2)
    generation = controller.generation
    pending.cancelled = False
    pending.fire()
    assert controller.generation == generation
    assert controller.board_count == 2


def test_restart_keeps_score(make_controller, score):
    controller = make_controller(2)
    controller.submit_guess(controller.boards[0].answer.word)
    controller.restart()
    assert score.value == 1
    assert controller.attempts == []
    assert controller.board_count == 2


def test_reset_score_returns_to_classic(make_controller, score):
    controller = make_controller(2)
    controller.submit_guess(controller.boards[0].answer.word)
    assert score.value == 1
    state = controller.reset_score()
    assert score.value == 0
    assert state.board_count == 1
    assert state.message.code is MessageCode.SCORE_RESET


def test_reset_score_broadcasts_reset_message(make_controller):
    controller = make_controller(1)
    started = []
    controller.subscribe(lambda event, state: started.append(state) if event == "stage_started" else None)
    controller.reset_score()
    assert len(started) == 1
    assert started[0].message.code is MessageCode.SCORE_RESET
    assert started[0].score == 0


def test_empty_dictionary_blocks_stage(score, settings, scheduler):
    controller = StageController(Dictionary([]), score, settings=settings, scheduler=scheduler)
    assert controller.blocked
    assert controller.message.code is MessageCode.EMPTY_DICTIONARY
    result = controller.submit_guess("termo")
    assert result.rejection is Rejection.EMPTY_DICTIONARY
    assert controller.state.to_dict()["boards"] == []


def test_repeated_answers_are_tolerated(score, settings, scheduler):
    dictionary = Dictionary([WordEntry("termo", "Palavra"), WordEntry("sonho")], draw_budget=0)
    controller = StageController(dictionary, score, settings=settings, scheduler=scheduler, board_count=4)
    assert len(controller.boards) == 4
    for word in ("termo", "sonho"):
        if not controller.is_over:
            controller.submit_guess(word)
            controller.settle()
    assert controller.is_over and controller.won
    assert score.value == 4


def test_typing_buffer(make_controller):
    controller = make_controller(1)
    for letter in "Ç1ab":
        controller.type_letter(letter)
    assert controller.buffer == "cab"
    assert controller.backspace()
    assert controller.buffer == "ca"
    for letter in "xyzw":
        controller.type_letter(letter)
    assert controller.buffer == "caxyz"


def test_submit_from_buffer(make_controller):
    controller = make_controller(1)
    answer = controller.boards[0].answer.normalized
    for letter in answer:
        assert controller.type_letter(letter)
    result = controller.submit_guess()
    assert result.accepted and controller.won
    assert controller.buffer == ""


def test_rejected_buffer_is_kept(make_controller):
    controller = make_controller(1)
    for letter in "xxxxx":
        controller.type_letter(letter)
    assert controller.submit_guess().rejection is Rejection.UNKNOWN_WORD
    assert controller.buffer == "xxxxx"


def test_listeners_receive_transitions(make_controller):
    controller = make_controller(1, autostart=False)
    events = []
    controller.subscribe(lambda event, state: events.append((event, state.board_count, state.is_over)))
    controller.start(1)
    controller.submit_guess(controller.boards[0].answer.word)
    assert [event for event, _, _ in events] == [
        "stage_started", "score_changed", "attempt_accepted", "stage_over",
    ]
    assert events[-1][2] is True


def test_failing_listener_does_not_break_stage(make_controller):
    controller = make_controller(1)

    def _boom(event, state):
        raise RuntimeError("render failed")

    controller.subscribe(_boom)
    assert controller.submit_guess(wrong_guesses(controller, 1)[0]).accepted


def test_state_snapshot_is_serializable(make_controller):
    controller = make_controller(2)
    controller.submit_guess(wrong_guesses(controller, 1)[0])
    payload = controller.state.to_dict()
    assert payload["mode"] == "dupleto"
    assert payload["wordCount"] == 2
    assert payload["attempts"] == 1
    assert payload["busy"] is True
    assert all(board["answer"] is None for board in payload["boards"])
    assert all(board["hint"] for board in payload["boards"])
    assert payload["tried"] == [controller.attempts[0].guess_raw]
    assert payload["keyboard"]
    assert payload["message"]["text"]


def test_snapshot_does_not_leak_mutable_boards(make_controller):
    controller = make_controller(1)
    state = controller.state
    state.boards[0].solved = True
    assert not controller.boards[0].solved


def test_game_mode_board_counts():
    assert GameMode.for_board_count(1) is GameMode.CLASSIC
    assert GameMode.DUPLETO.board_count == 2
    assert GameMode("quapleto").board_count == 4
    with pytest.raises(ValueError):
        GameMode.for_board_count(3)


def test_manual_scheduler_orders_calls():
    scheduler = ManualScheduler()
    calls = []
    scheduler.schedule(2, lambda: calls.append("b"))
    scheduler.schedule(1, lambda: calls.append("a"))
    cancelled = scheduler.schedule(1.5, lambda: calls.append("x"))
    cancelled.cancel()
    assert scheduler.advance(0.5) == 0
    assert scheduler.run_pending() == 2
    assert calls == ["a", "b"]
    assert scheduler.pending == []

import argparse
import logging
import os
import time

from colorama import Fore, Style, init

from score_service import JsonFileScoreStore, ScoreLedger
from settings import BOARD_COUNTS, ROOT_DIR, load_settings
from stage import ManualScheduler, StageController
from utils import display_feedback, display_keyboard
from words import load_dictionary

init(autoreset=True)

SCORE_FILE = ROOT_DIR / ".muskiguess_score.json"


def _clear_screen():
    os.system("cls" if os.name == "nt" else "clear")


def render(controller):
    state = controller.state
    print(f"{Style.BRIGHT}MuskiGuess{Style.RESET_ALL}  modo: {state.mode.value}  "
          f"pontos: {state.score}  tentativas: {len(state.attempts)}/{state.max_tries}")
    for index, board in enumerate(state.boards):
        status = f"{Fore.LIGHTGREEN_EX}resolvida{Style.RESET_ALL}" if board.solved else "em aberto"
        print(f"\nPalavra {index + 1} ({status}) - dica: {board.answer.hint or '-'}")
        for attempt in state.attempts:
            statuses = attempt.evaluation_for(index)
            if statuses is not None:
                print("  " + display_feedback(attempt.guess_raw, statuses))
    print()
    print(display_keyboard(state.keyboard))
    if state.message:
        print(f"\n{state.message.text}")


def main(argv=None):
    settings = load_settings()
    parser = argparse.ArgumentParser(description="MuskiGuess no terminal.")
    parser.add_argument("--words", default=str(settings.dictionary_file), help="Banco de palavras (JSON).")
    parser.add_argument("--boards", type=int, choices=BOARD_COUNTS, default=1, help="Quantidade de palavras.")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    dictionary = load_dictionary(args.words, word_length=settings.word_length, draw_budget=settings.draw_budget)
    scheduler = ManualScheduler()
    controller = StageController(
        dictionary,
        ScoreLedger(JsonFileScoreStore(SCORE_FILE)),
        settings=settings,
        scheduler=scheduler,
        board_count=args.boards,
    )
    if controller.blocked:
        print(controller.message.text)
        return 1

    _clear_screen()
    print("Bem-vindo ao MuskiGuess!")
    print("Comandos: :r reinicia, :z zera a pontuação, :q sai.\n")
    while True:
        render(controller)
        try:
            guess = input(f"\nDigite sua tentativa ({settings.word_length} letras): ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        if guess == ":q":
            return 0
        if guess == ":r":
            controller.restart()
            _clear_screen()
            continue
        if guess == ":z":
            controller.reset_score()
            _clear_screen()
            continue

        controller.submit_guess(guess)
        # Sem animação no terminal: o palpite é revelado imediatamente.
        controller.settle()
        _clear_screen()
        if controller.is_over:
            render(controller)
            time.sleep(settings.advance_delay)
            scheduler.advance(settings.advance_delay)
            _clear_screen()


if __name__ == "__main__":
    raise SystemExit(main())

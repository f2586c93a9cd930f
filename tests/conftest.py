import random

import pytest

from score_service import MemoryScoreStore, ScoreLedger
from settings import GameSettings
from stage import ManualScheduler, StageController
from words import Dictionary, WordEntry

WORDS = [
    ("termo", "Palavra ou expressão"),
    ("sonho", "Acontece enquanto dormimos"),
    ("barco", "Navega em rios e mares"),
    ("chuva", "Cai do céu"),
    ("dente", "Usado para mastigar"),
    ("piano", "Instrumento de teclas"),
    ("tigre", "Felino listrado"),
    ("verde", "Cor da grama"),
    ("nuvem", "Flutua no céu"),
    ("limão", "Fruta cítrica"),
    ("praça", "Espaço público"),
    ("saúde", "Bem-estar do corpo"),
    ("globo", "Esfera"),
    ("festa", "Comemoração"),
    ("lagoa", "Pequeno lago"),
    ("rocha", "Pedra grande"),
]


@pytest.fixture
def entries():
    return [WordEntry(word=word, hint=hint) for word, hint in WORDS]


@pytest.fixture
def dictionary(entries):
    return Dictionary(entries, rng=random.Random(1234))


@pytest.fixture
def settings():
    return GameSettings(advance_delay=3.0)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def score_store():
    return MemoryScoreStore()


@pytest.fixture
def score(score_store):
    return ScoreLedger(score_store)


@pytest.fixture
def make_controller(dictionary, score, settings, scheduler):
    def _make(board_count=1, **kwargs):
        return StageController(
            kwargs.pop("dictionary", dictionary),
            kwargs.pop("score", score),
            settings=kwargs.pop("settings", settings),
            scheduler=kwargs.pop("scheduler", scheduler),
            board_count=board_count,
            **kwargs,
        )

    return _make


def wrong_guesses(controller, count):
    """Dictionary words that answer none of the controller's boards."""
    answers = {board.answer.normalized for board in controller.boards}
    pool = [entry.word for entry in controller.dictionary.entries if entry.normalized not in answers]
    assert len(pool) >= count
    return pool[:count]

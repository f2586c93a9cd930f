from __future__ import annotations

import itertools
import logging
import time
from typing import Dict, Optional
from uuid import uuid4

from flask import Flask, current_app, jsonify, request, session
from flask_socketio import SocketIO, emit, join_room

from database import db
from score_service import MemoryScoreStore, ScoreLedger, SqlScoreStore
from settings import BOARD_COUNTS, GameSettings, load_settings
from stage import GameMode, SocketIOScheduler, StageController, StageState
from utils import normalize
from words import Dictionary, load_dictionary

logger = logging.getLogger(__name__)

socketio = SocketIO()

PUSHED_EVENTS = {"stage_started", "stage_over", "score_changed"}

GAME_IDLE_TIMEOUT = 600  # seconds
GAME_SWEEP_INTERVAL = 30  # seconds

_game_gc_started = False


class GameRegistry:
    """In-process table of running games, keyed by game id."""

    def __init__(self, dictionary: Dictionary, settings: GameSettings, store, scheduler):
        self.dictionary = dictionary
        self.settings = settings
        self.store = store
        self.scheduler = scheduler
        self.games: Dict[str, StageController] = {}
        self.scores: Dict[str, ScoreLedger] = {}
        self.last_activity: Dict[str, float] = {}
        self._ids = itertools.count(1)

    def create(self, board_count: int, player_id: str) -> tuple[str, StageController]:
        game_id = str(next(self._ids))
        controller = StageController(
            self.dictionary,
            self.score_for(player_id),
            settings=self.settings,
            scheduler=self.scheduler,
            board_count=board_count,
            autostart=False,
        )
        controller.subscribe(_room_broadcaster(game_id))
        controller.start(board_count)
        self.games[game_id] = controller
        self.last_activity[game_id] = time.time()
        return game_id, controller

    def score_for(self, player_id: str) -> ScoreLedger:
        """One ledger per player, shared by all of that player's games."""
        key = f"player:{player_id}"
        ledger = self.scores.get(key)
        if ledger is None:
            ledger = self.scores[key] = ScoreLedger(self.store, key=key)
        return ledger

    def get(self, game_id) -> Optional[StageController]:
        if game_id is None:
            return None
        game_id = str(game_id)
        controller = self.games.get(game_id)
        if controller is not None:
            self.last_activity[game_id] = time.time()
        return controller

    def sweep(self, now: Optional[float] = None, idle_timeout: float = GAME_IDLE_TIMEOUT) -> int:
        """Drop games untouched for ``idle_timeout`` seconds. Returns how many were dropped."""
        now = time.time() if now is None else now
        dropped = 0
        for game_id, controller in list(self.games.items()):
            last_activity = self.last_activity.get(game_id) or now
            if now - last_activity < idle_timeout:
                continue
            controller.close()
            self.games.pop(game_id, None)
            self.last_activity.pop(game_id, None)
            dropped += 1
        return dropped


def _game_gc_worker(registry: GameRegistry):
    while True:
        socketio.sleep(GAME_SWEEP_INTERVAL)
        dropped = registry.sweep()
        if dropped:
            logger.info("%d jogo(s) ocioso(s) removido(s)", dropped)


def _room_name(game_id: str) -> str:
    return f"game:{game_id}"


def _room_broadcaster(game_id: str):
    def _listener(event: str, state: StageState):
        if event not in PUSHED_EVENTS:
            return
        socketio.emit(event, {"gameId": game_id, "state": state.to_dict()}, to=_room_name(game_id))

    return _listener


def _registry() -> GameRegistry:
    return current_app.extensions["stages"]


def _as_dict(data) -> dict:
    return data if isinstance(data, dict) else {}


def _payload() -> dict:
    return _as_dict(request.get_json(silent=True))


def _resolve_board_count(data: dict, default: int = 1) -> Optional[int]:
    raw = data.get("wordCount")
    if raw is None:
        mode = data.get("mode")
        if mode is None or mode == "":
            return default
        if not isinstance(mode, str):
            return None
        mode = mode.lower()
        try:
            return GameMode(mode).board_count
        except ValueError:
            return None
    try:
        count = int(raw)
    except (TypeError, ValueError):
        return None
    return count if count in BOARD_COUNTS else None


def _player_id() -> str:
    player_id = session.get("player_id")
    if not player_id:
        player_id = uuid4().hex
        session["player_id"] = player_id
    return player_id


def _game_not_found():
    return jsonify({"error": "Jogo não encontrado"}), 404


def _state_payload(game_id: str, controller: StageController) -> dict:
    payload = controller.state.to_dict()
    payload["gameId"] = game_id
    return payload


def create_app(
    settings: Optional[GameSettings] = None,
    *,
    dictionary: Optional[Dictionary] = None,
    scheduler=None,
    async_mode: Optional[str] = None,
) -> Flask:
    global _game_gc_started
    settings = settings or load_settings()
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=settings.secret_key,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
    )

    if settings.database_url:
        app.config.update(
            SQLALCHEMY_DATABASE_URI=settings.database_url,
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
        )
        db.init_app(app)
        with app.app_context():
            db.create_all()
        store = SqlScoreStore()
    else:
        app.logger.warning("DATABASE_URL não definido; pontuação mantida apenas em memória.")
        store = MemoryScoreStore()

    if dictionary is None:
        dictionary = load_dictionary(
            settings.dictionary_file,
            word_length=settings.word_length,
            draw_budget=settings.draw_budget,
        )
    if not len(dictionary):
        app.logger.error("Dicionário vazio: nenhuma rodada poderá começar.")

    socketio.init_app(app, cors_allowed_origins="*", async_mode=async_mode)
    registry = GameRegistry(
        dictionary,
        settings,
        store,
        scheduler or SocketIOScheduler(socketio),
    )
    app.extensions["stages"] = registry
    if scheduler is None and not _game_gc_started:
        _game_gc_started = True
        socketio.start_background_task(_game_gc_worker, registry)
    _register_routes(app)
    return app


def _register_routes(app: Flask) -> None:
    @app.post("/api/new-game")
    def new_game():
        data = _payload()
        board_count = _resolve_board_count(data)
        if board_count is None:
            return jsonify({"error": "Modo inválido. Use 1, 2 ou 4 palavras."}), 400
        game_id, controller = _registry().create(board_count, _player_id())
        current_app.logger.info("Jogo %s criado com %d palavra(s)", game_id, board_count)
        return jsonify(_state_payload(game_id, controller)), 201

    @app.get("/api/state")
    def game_state():
        game_id = request.args.get("gameId", type=str)
        controller = _registry().get(game_id)
        if controller is None:
            return _game_not_found()
        return jsonify(_state_payload(game_id, controller))

    @app.post("/api/type")
    def type_letter():
        data = _payload()
        game_id = data.get("gameId")
        controller = _registry().get(game_id)
        if controller is None:
            return _game_not_found()
        controller.type_letter(data.get("letter") or "")
        return jsonify(_state_payload(str(game_id), controller))

    @app.post("/api/backspace")
    def backspace():
        data = _payload()
        game_id = data.get("gameId")
        controller = _registry().get(game_id)
        if controller is None:
            return _game_not_found()
        controller.backspace()
        return jsonify(_state_payload(str(game_id), controller))

    @app.post("/api/guess")
    def make_guess():
        data = _payload()
        game_id = data.get("gameId")
        controller = _registry().get(game_id)
        if controller is None:
            return _game_not_found()
        result = controller.submit_guess(data.get("guess"))
        payload = _state_payload(str(game_id), controller)
        if not result.accepted:
            message = controller.message
            return jsonify({
                "error": message.text if message else result.rejection.value,
                "code": result.rejection.value,
                "state": payload,
            }), 400
        payload["solved"] = list(result.solved_indices)
        return jsonify(payload)

    @app.post("/api/settled")
    def settled():
        data = _payload()
        game_id = data.get("gameId")
        controller = _registry().get(game_id)
        if controller is None:
            return _game_not_found()
        controller.settle()
        return jsonify(_state_payload(str(game_id), controller))

    @app.post("/api/restart")
    def restart():
        data = _payload()
        game_id = data.get("gameId")
        controller = _registry().get(game_id)
        if controller is None:
            return _game_not_found()
        board_count = _resolve_board_count(data, default=controller.board_count)
        if board_count is None:
            return jsonify({"error": "Modo inválido. Use 1, 2 ou 4 palavras."}), 400
        controller.restart(board_count)
        return jsonify(_state_payload(str(game_id), controller))

    @app.post("/api/reset-score")
    def reset_score():
        data = _payload()
        game_id = data.get("gameId")
        controller = _registry().get(game_id)
        if controller is None:
            return _game_not_found()
        controller.reset_score()
        return jsonify(_state_payload(str(game_id), controller))

    @app.get("/api/check-word")
    def check_word():
        word = normalize(request.args.get("word", ""))
        dictionary = _registry().dictionary
        if len(word) != dictionary.word_length:
            return jsonify({
                "exists": False,
                "error": f"Palavra deve ter {dictionary.word_length} letras",
            })
        return jsonify({"exists": dictionary.contains(word)})


@socketio.on("join_game")
def handle_join_game(data):
    payload = _as_dict(data)
    game_id = str(payload.get("gameId") or "")
    controller = _registry().get(game_id)
    if controller is None:
        emit("game_error", {"error": "Jogo não encontrado"}, to=request.sid)
        return
    join_room(_room_name(game_id))
    emit("game_joined", {"gameId": game_id, "state": controller.state.to_dict()}, to=request.sid)


@socketio.on("submit_guess")
def handle_submit_guess(data):
    payload = _as_dict(data)
    game_id = str(payload.get("gameId") or "")
    controller = _registry().get(game_id)
    if controller is None:
        emit("guess_error", {"error": "Jogo não encontrado"}, to=request.sid)
        return
    result = controller.submit_guess(payload.get("guess"))
    if not result.accepted:
        message = controller.message
        emit(
            "guess_error",
            {"error": message.text if message else result.rejection.value, "code": result.rejection.value},
            to=request.sid,
        )
        return
    emit(
        "guess_result",
        {"gameId": game_id, "solved": list(result.solved_indices), "state": controller.state.to_dict()},
        to=request.sid,
    )


@socketio.on("settled")
def handle_settled(data):
    payload = _as_dict(data)
    controller = _registry().get(str(payload.get("gameId") or ""))
    if controller is not None:
        controller.settle()

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


class MessageCode(str, enum.Enum):
    """Opaque codes handed to the presentation layer."""

    EMPTY_DICTIONARY = "empty_dictionary"
    INVALID_LENGTH = "invalid_length"
    UNKNOWN_WORD = "unknown_word"
    DUPLICATE_GUESS = "duplicate_guess"
    STAGE_OVER = "stage_over"
    BUSY = "busy"
    STAGE_WON = "stage_won"
    STAGE_LOST = "stage_lost"
    HINT_CORRECT = "hint_correct"
    HINT_PRESENT = "hint_present"
    HINT_ABSENT = "hint_absent"
    SCORE_RESET = "score_reset"


TEXTS: Dict[MessageCode, str] = {
    MessageCode.EMPTY_DICTIONARY: "Nenhuma palavra disponível no dicionário.",
    MessageCode.INVALID_LENGTH: "Palpite inválido. Informe {length} letras.",
    MessageCode.UNKNOWN_WORD: "Palavra não reconhecida na lista.",
    MessageCode.DUPLICATE_GUESS: "Você já tentou “{guess}”. Tente uma palavra diferente.",
    MessageCode.STAGE_OVER: "A rodada já terminou. Aguarde a próxima.",
    MessageCode.BUSY: "Aguarde a revelação do palpite anterior.",
    MessageCode.STAGE_WON: "Parabéns, você acertou!",
    MessageCode.STAGE_LOST: "Fim de jogo! A palavra era: {answers}",
    MessageCode.HINT_CORRECT: "A letra {letter} está na posição certa.",
    MessageCode.HINT_PRESENT: "A letra {letter} existe, mas em outra posição.",
    MessageCode.HINT_ABSENT: "A letra {letter} não está na palavra.",
    MessageCode.SCORE_RESET: "Pontuação zerada.",
}

PLURAL_LOST = "Fim de jogo! As palavras eram: {answers}"


@dataclass(frozen=True)
class Message:
    code: MessageCode
    params: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, code: MessageCode, **params) -> "Message":
        return cls(code=code, params=tuple(sorted(params.items())))

    @property
    def text(self) -> str:
        return render(self)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "text": self.text, "params": dict(self.params)}


def render(message: Message) -> str:
    params = dict(message.params)
    answers = params.get("answers")
    if isinstance(answers, (list, tuple)):
        params["answers"] = ", ".join(answers)
        if message.code is MessageCode.STAGE_LOST and len(answers) > 1:
            return PLURAL_LOST.format(**params)
    letter = params.get("letter")
    if isinstance(letter, str):
        params["letter"] = letter.upper()
    return TEXTS[message.code].format(**params)

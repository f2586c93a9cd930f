"""
Relatório de verificação do banco de palavras.

Usage:
    python scripts/verificacao_dicionario.py [caminho/para/palavras.json]

Lists repeated words (after removing accents), accented words and words
whose length differs from WORD_LENGTH, then how many entries would load.
"""

from __future__ import annotations

import sys
from pathlib import Path

from settings import load_settings
from words import Dictionary, audit_entries, load_entries


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    settings = load_settings()
    file_path = Path(argv[0]) if argv else settings.dictionary_file
    entries = load_entries(file_path)
    if not entries:
        print(f"Arquivo não encontrado ou vazio: {file_path}")
        return 1

    report = audit_entries(entries, settings.word_length)
    dictionary = Dictionary(entries, word_length=settings.word_length)

    print("=" * 50)
    print("RELATÓRIO DE VERIFICAÇÃO COMPLETO")
    print("=" * 50)
    print(f"Repetidas ({len(report['repeated'])}):", ", ".join(report["repeated"]) or "nenhuma")
    print("Com acento/especial:", ", ".join(report["accented"]) or "nenhuma")
    print(f"Tamanho != {settings.word_length}:", ", ".join(report["wrong_length"]) or "nenhuma")
    print("=" * 50)
    print(f"\nTamanho original: {len(entries)}")
    print(f"Entradas válidas no dicionário: {len(dictionary)}")
    print("=" * 50)
    return 0 if not (report["repeated"] or report["wrong_length"]) else 2


if __name__ == "__main__":
    raise SystemExit(main())

import unicodedata

from colorama import Fore, Style


def normalize(text) -> str:
    """Canonical form used for every comparison: trimmed, lowercase, no accents.

    ``"  Maçã "`` becomes ``"maca"``. Never fails; ``None`` yields ``""``.
    """
    if text is None:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text).strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def format_letter(letter, status):
    if status == 'gray':
        return f"{Fore.LIGHTBLACK_EX}{letter}{Style.RESET_ALL}"
    elif status == 'yellow':
        return f"{Fore.LIGHTYELLOW_EX}{letter}{Style.RESET_ALL}"
    elif status == 'green':
        return f"{Fore.LIGHTGREEN_EX}{letter}{Style.RESET_ALL}"
    else:
        return letter


def display_feedback(guess, statuses):
    """Render one evaluated row for the terminal."""
    feedback = []
    for letter, status in zip(normalize(guess), statuses):
        feedback.append(format_letter(letter.upper(), status.color))
    return ' '.join(feedback)


def display_keyboard(keyboard, rows=("qwertyuiop", "asdfghjkl", "zxcvbnm")):
    lines = []
    for row in rows:
        cells = []
        for letter in row:
            status = keyboard.get(letter)
            cells.append(format_letter(letter.upper(), status.color if status else None))
        lines.append(' '.join(cells))
    return '\n'.join(lines)

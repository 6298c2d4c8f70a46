import unicodedata
from typing import Iterable, List

SUGGESTED_EMOJIS = [
    "💪", "🔥", "⭐", "🎯", "🚀",
    "💎", "🌟", "⚡", "🏆", "🎮",
    "🦁", "🐯", "🦊", "🐺", "🦅",
    "🌈", "☀️", "🌙", "❤️", "💜",
]

VARIATION_SELECTOR = "\ufe0f"
ZERO_WIDTH_JOINER = "\u200d"

_SYMBOL_CATEGORIES = {"So", "Sk", "Sm"}
_MARK_CATEGORIES = {"Mn", "Me"}
_MAX_SYMBOLS = 3


def is_valid_emoji(text: str) -> bool:
    """Whether text is a single emoji glyph.

    Counts symbol code points (regional indicators and skin tones included);
    joiners, variation selectors and combining marks ride along for free.
    Letters, digits, punctuation and whitespace reject the input.
    """
    if not text:
        return False
    symbols = 0
    for char in text:
        if char in (VARIATION_SELECTOR, ZERO_WIDTH_JOINER):
            continue
        category = unicodedata.category(char)
        if category in _MARK_CATEGORIES:
            continue
        if category not in _SYMBOL_CATEGORIES:
            return False
        symbols += 1
    return 1 <= symbols <= _MAX_SYMBOLS


def filter_available_emojis(used: Iterable[str]) -> List[str]:
    taken = set(used)
    return [emoji for emoji in SUGGESTED_EMOJIS if emoji not in taken]

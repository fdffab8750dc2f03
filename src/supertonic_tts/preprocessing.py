"""
Text Normalization for Tokenization.

Deterministic text preprocessing applied before unicode indexing. All
functions are pure (no side effects) and depend only on the fixed tables
below, never on the process locale.

Steps:
- Unicode compatibility decomposition (NFKD)
- Emoji removal (three pictograph blocks, full codepoints)
- Symbol substitution (dashes, curly quotes, separators)
- Punctuation spacing and whitespace collapse
- Terminal punctuation guarantee
"""

import re
import unicodedata

# Emoji codepoint ranges removed before indexing (inclusive)
EMOJI_RANGES: tuple[tuple[int, int], ...] = (
    (0x1F600, 0x1F64F),  # Emoticons
    (0x1F300, 0x1F5FF),  # Symbols & pictographs
    (0x1F680, 0x1F6FF),  # Transport & map symbols
)

EMOJI_PATTERN = re.compile(
    "[" + "".join(f"{chr(start)}-{chr(end)}" for start, end in EMOJI_RANGES) + "]"
)

# Symbol replacement mapping
SYMBOL_MAP: dict[str, str] = {
    # Dashes
    "–": "-",  # En dash
    "‑": "-",  # Non-breaking hyphen
    "—": "-",  # Em dash
    # Smart quotes
    "“": '"',  # Left double quote
    "”": '"',  # Right double quote
    "‘": "'",  # Left single quote
    "’": "'",  # Right single quote
    # Separators read as pauses
    "_": " ",
    "|": " ",
    "/": " ",
    "#": " ",
    "→": " ",  # Right arrow
    "←": " ",  # Left arrow
}

# Terminal marks: ASCII and CJK sentence enders, closing brackets and quotes
TERMINAL_PUNCTUATION = ".!?;:,'\")]}…。」』】〉》›»"

_SPACE_BEFORE_PUNCT = re.compile(r" ([,.!?;:])")
_WHITESPACE = re.compile(r"\s+")


def remove_emojis(text: str) -> str:
    """Remove characters in the emoji codepoint ranges.

    Python strings index codepoints, so characters outside the BMP are
    matched whole.
    """
    return EMOJI_PATTERN.sub("", text)


def replace_symbols(text: str) -> str:
    """Apply the fixed symbol substitution table."""
    result = text
    for symbol, replacement in SYMBOL_MAP.items():
        result = result.replace(symbol, replacement)
    return result


def fix_punctuation_spacing(text: str) -> str:
    """Drop a space before punctuation, collapse whitespace and trim.

    Examples:
        "Hello , world !" -> "Hello, world!"
        "  a \\t b  " -> "a b"
    """
    result = _SPACE_BEFORE_PUNCT.sub(r"\1", text)
    result = _WHITESPACE.sub(" ", result)
    return result.strip()


def ensure_terminal_punctuation(text: str) -> str:
    """Append a period unless the text already ends in a terminal mark."""
    if text and text[-1] in TERMINAL_PUNCTUATION:
        return text
    return text + "."


def normalize_text(text: str) -> str:
    """Complete normalization pipeline applied before tokenization.

    Applies, in order:
    1. NFKD normalization
    2. Emoji removal
    3. Symbol substitution
    4. Punctuation spacing and whitespace collapse
    5. Terminal punctuation

    Args:
        text: Raw input text

    Returns:
        Normalized text, always ending in a terminal punctuation mark
    """
    result = unicodedata.normalize("NFKD", text)
    result = remove_emojis(result)
    result = replace_symbols(result)
    result = fix_punctuation_spacing(result)
    return ensure_terminal_punctuation(result)

"""
Input hygiene for text that ends up inside LLM prompts.

Extracted résumé text and pasted job descriptions often carry invisible
characters (zero-width joiners, direction overrides, stray control bytes from
PDF text layers). They are stripped before the text is stored or sent.
"""
import re


# Zero-width characters
ZERO_WIDTH_CHARS = (
    '\u200b',  # Zero-width space
    '\u200c',  # Zero-width non-joiner
    '\u200d',  # Zero-width joiner
    '\ufeff',  # Zero-width no-break space
)

# Direction override characters
DIRECTION_CHARS = (
    '\u202a',  # Left-to-right embedding
    '\u202b',  # Right-to-left embedding
    '\u202c',  # Pop directional formatting
    '\u202d',  # Left-to-right override
    '\u202e',  # Right-to-left override
)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_BLANK_RUNS = re.compile(r"\n{3,}")
_SPACE_RUNS = re.compile(r"[ \t]{2,}")


def contains_suspicious_unicode(text: str) -> bool:
    """
    Detect invisible or direction-changing Unicode characters.

    Args:
        text: Input text to check

    Returns:
        True if suspicious Unicode detected
    """
    return any(char in text for char in ZERO_WIDTH_CHARS + DIRECTION_CHARS)


def sanitize_prompt_text(text: str) -> str:
    """
    Remove invisible characters and collapse whitespace runs.

    Args:
        text: Raw text (extracted or pasted)

    Returns:
        Cleaned text; empty string for empty input
    """
    if not text:
        return ""
    for char in ZERO_WIDTH_CHARS + DIRECTION_CHARS:
        text = text.replace(char, "")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = _SPACE_RUNS.sub(" ", text)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()

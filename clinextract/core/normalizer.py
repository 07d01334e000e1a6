"""
Text normalization applied before template matching and field extraction.

Line structure is preserved so that line-anchored patterns such as
``label[:\\s]+([^\\n\\r]+)`` keep working; everything else is flattened.
"""

import re

# Word characters, whitespace and basic punctuation survive; "/" is kept for dates
_DISALLOWED_CHARS = re.compile(r"[^\w\s.,;:()/\-]")
_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_LINE_BREAKS = re.compile(r"\r\n?")


def normalize_text(text: str) -> str:
    """
    Normalize extracted text.

    - strips characters outside the allow-list
    - collapses runs of whitespace within a line to a single space
    - trims each line and removes blank lines

    Pure and idempotent: ``normalize_text(normalize_text(x)) == normalize_text(x)``.
    """
    if not text:
        return ""

    text = _LINE_BREAKS.sub("\n", text)
    text = _DISALLOWED_CHARS.sub("", text)
    lines = (_HORIZONTAL_WS.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)

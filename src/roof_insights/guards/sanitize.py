"""Prompt-input sanitization.

This is a best-effort filter for free text that ends up inside a model
prompt. It removes markup characters and the common prompt-injection
phrasings; it is not a guarantee that hostile text is neutralized.
"""

import re

DEFAULT_MAX_LEN = 500

_ANGLE_BRACKETS = re.compile(r"[<>]")

_INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    # "ignore all previous instructions", "ignore the above instruction", ...
    re.compile(r"ignore\b.{0,40}?\binstructions?\b", re.IGNORECASE | re.DOTALL),
    re.compile(r"disregard\b.{0,40}?\b(?:instructions?|rules)\b", re.IGNORECASE | re.DOTALL),
    re.compile(r"system\s*prompt", re.IGNORECASE),
    re.compile(r"\bjailbreak\w*", re.IGNORECASE),
    re.compile(r"\bdeveloper\s+mode\b", re.IGNORECASE),
    re.compile(r"\bdo\s+anything\s+now\b", re.IGNORECASE),
)

_WHITESPACE_RUN = re.compile(r"[ \t]{2,}")


def clean_text(text: str | None, max_len: int = DEFAULT_MAX_LEN) -> str:
    """Make a free-text value safe to embed in a prompt.

    Steps run in a fixed order: truncate to ``max_len``, drop angle brackets,
    drop injection phrases, then tidy whitespace. Every step only removes
    characters, so the result never exceeds ``max_len``.
    """
    if not text:
        return ""
    cleaned = str(text)[: max(max_len, 0)]
    cleaned = _ANGLE_BRACKETS.sub("", cleaned)
    for pattern in _INJECTION_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned)
    return cleaned.strip()

"""Text normalization helpers applied to fragments, queries and templates.

Loaders run every fragment through :func:`clean_string` before it is
indexed, and the orchestrator does the same to incoming queries, so the
text that is embedded at query time is normalized the same way as the
text that was embedded at ingestion time.
"""

import hashlib
import re


def clean_string(text: str) -> str:
    """Normalize whitespace and strip markup noise from *text*.

    Removes backslashes, turns ``#`` into spaces, collapses ``". ."`` runs,
    folds line breaks and whitespace runs into single spaces, then trims.

    Args:
        text: Raw text from a loader, a query, or a prompt template.

    Returns:
        Single-line normalized text (possibly empty).
    """
    text = text.replace("\\", "")
    text = text.replace("#", " ")
    text = text.replace(". .", ".")
    text = re.sub(r"(\r\n|\n|\r)", " ", text)
    text = re.sub(r"\s\s+", " ", text)
    return text.strip()


def truncate_center(text: str, max_length: int) -> str:
    """Shorten *text* to *max_length* characters by eliding its middle.

    Used for log-friendly source labels; returns *text* untouched when it
    already fits.
    """
    if len(text) <= max_length:
        return text
    if max_length <= 3:
        return text[:max_length]
    keep = max_length - 3
    head = (keep + 1) // 2
    tail = keep // 2
    return f"{text[:head]}...{text[len(text) - tail:]}"


def md5_hex(value: str) -> str:
    """Return the hex MD5 digest of *value* (used to build loader ids)."""
    return hashlib.md5(value.encode("utf-8")).hexdigest()

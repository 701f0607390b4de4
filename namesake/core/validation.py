"""Name part normalization and the allowed-character policy.

A valid part is made of letters from any script (precomposed diacritics
included), combining marks that follow a letter, hyphens, apostrophes and
single spaces, and starts with a letter.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Literal

from .models import RejectedPart

MAX_PART_LENGTH = 50

REASON_EMPTY = "empty"
REASON_TOO_LONG = "too_long"
REASON_START = "must_start_with_letter"
REASON_CHARS = "invalid_characters"

_PUNCTUATION = {"-", "'", "’", " "}
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_part(raw: str | None) -> str:
    """NFC-normalize, trim and collapse internal whitespace. Case is preserved."""
    if raw is None:
        return ""
    text = unicodedata.normalize("NFC", str(raw))
    return _WHITESPACE_RE.sub(" ", text).strip()


def fold_part(part: str) -> str:
    """Lookup/dedup key for a part: normalized and case-folded."""
    return normalize_part(part).casefold()


def _is_letter(ch: str) -> bool:
    return unicodedata.category(ch).startswith("L")


def _is_combining(ch: str) -> bool:
    return unicodedata.category(ch) in ("Mn", "Mc")


def check_part(part: str) -> str | None:
    """Return the rejection reason for a normalized part, or None if it is valid."""
    if not part:
        return REASON_EMPTY
    if len(part) > MAX_PART_LENGTH:
        return REASON_TOO_LONG
    if not _is_letter(part[0]):
        return REASON_START

    prev = ""
    for ch in part:
        if _is_letter(ch):
            pass
        elif _is_combining(ch):
            if not prev or not (_is_letter(prev) or _is_combining(prev)):
                return REASON_CHARS
        elif ch not in _PUNCTUATION:
            return REASON_CHARS
        prev = ch
    return None


def validate_parts(
    raw_parts: Iterable[str],
    role: Literal["first", "middle"],
) -> tuple[list[str], list[RejectedPart]]:
    """Split raw input into valid normalized parts and rejections, keeping input order."""
    valid: list[str] = []
    rejected: list[RejectedPart] = []
    for raw in raw_parts:
        part = normalize_part(raw)
        reason = check_part(part)
        if reason is None:
            valid.append(part)
        else:
            rejected.append(
                RejectedPart(part=part if part else str(raw or ""), role=role, reason=reason)
            )
    return valid, rejected

"""
Sanitizers for extracted company and position strings.

Both sanitizers are idempotent: feeding their output back in returns it
unchanged. Rejection returns None.
"""

import html
import re
from typing import Callable, Optional

from jobmail_pipeline.normalization.rules import (
    BOILERPLATE_TERMS,
    COMPANY_BOILERPLATE_PHRASES,
    COMPANY_MAX_LENGTH,
    COMPANY_MAX_TOKENS,
    LEADING_DETERMINERS,
    POSITION_BOILERPLATE_PHRASES,
    POSITION_MAX_LENGTH,
    POSITION_MAX_TOKENS,
    STOPWORDS,
    TITLE_SMALL_WORDS,
)

_TAG = re.compile(r"<[^>]*>")
_MARKUP_CHARS = re.compile(r"[*_`#\[\]{}<>]")
_WHITESPACE = re.compile(r"\s+")
_EDGE_JUNK = "\"'“”‘’ \t-–—:|,;"
_TRAILING_PUNCT = re.compile(r"[\s.,;:!?\-–—|]+$")
_SENTENCE_END = re.compile(r"[.!?]\s.*$", re.DOTALL)
_ANY_TERMINATOR = re.compile(r"[.!?].*$", re.DOTALL)
_TRAILING_CLAUSE = re.compile(r"\s+(at|with|for)\s+.*$", re.IGNORECASE)
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")


def unescape_fully(text: str) -> str:
    """Decode HTML entities until none are left ("&amp;amp;" -> "&")."""
    previous = None
    while previous != text:
        previous, text = text, html.unescape(text)
    return text


def strip_markup(text: str) -> str:
    """Decode entities, drop tags and markdown residue, collapse whitespace."""
    cleaned = unescape_fully(text)
    cleaned = _TAG.sub(" ", cleaned)
    cleaned = _MARKUP_CHARS.sub(" ", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned.strip(_EDGE_JUNK)


def split_camel(text: str) -> str:
    """'IngramMicro' -> 'Ingram Micro'."""
    return _CAMEL_BOUNDARY.sub(r"\1 \2", text)


def title_case(text: str) -> str:
    """
    Title-case words, keeping small words lower-case after the first word.

    Words that already carry an inner capital ("McKinsey", "IBM", "iOS")
    are left untouched.
    """
    words = text.split()
    cased = []
    for index, word in enumerate(words):
        lower = word.lower()
        if index > 0 and lower in TITLE_SMALL_WORDS:
            cased.append(lower)
        elif any(ch.isupper() for ch in word[1:]):
            cased.append(word)
        else:
            cased.append(word[:1].upper() + word[1:].lower())
    return " ".join(cased)


# Each cleanup step can expose work for an earlier one ("the - a X"), so
# candidates are cleaned until a pass leaves them unchanged
_MAX_PASSES = 8


def _finish(cleaned: str, max_tokens: int, max_length: int) -> Optional[str]:
    words = title_case(cleaned).split()[:max_tokens]
    result = _TRAILING_PUNCT.sub("", " ".join(words)).strip(_EDGE_JUNK)

    if not result:
        return None
    if "@" in result or len(result) > max_length:
        return None
    if BOILERPLATE_TERMS.search(result):
        return None
    tokens = result.split()
    if all(token.lower() in STOPWORDS for token in tokens):
        return None
    if all(len(token) < 2 for token in tokens):
        return None
    return result


def _drop_determiners(text: str) -> str:
    return LEADING_DETERMINERS.sub("", text).strip(_EDGE_JUNK)


def _until_stable(clean_once: Callable[[str], Optional[str]], value: str) -> Optional[str]:
    current = value
    for _ in range(_MAX_PASSES):
        cleaned = clean_once(current)
        if cleaned is None or cleaned == current:
            return cleaned
        current = cleaned
    # Still changing: no stable form to return
    return None


def _company_pass(value: str) -> Optional[str]:
    cleaned = strip_markup(value)
    cleaned = COMPANY_BOILERPLATE_PHRASES.sub("", cleaned)
    cleaned = _SENTENCE_END.sub("", cleaned)
    cleaned = _TRAILING_PUNCT.sub("", cleaned).strip(_EDGE_JUNK)
    cleaned = _drop_determiners(cleaned)
    return _finish(cleaned, COMPANY_MAX_TOKENS, COMPANY_MAX_LENGTH)


def _position_pass(value: str) -> Optional[str]:
    cleaned = strip_markup(value)
    cleaned = POSITION_BOILERPLATE_PHRASES.sub("", cleaned)
    cleaned = _ANY_TERMINATOR.sub("", cleaned)
    cleaned = _TRAILING_CLAUSE.sub("", cleaned)
    cleaned = _TRAILING_PUNCT.sub("", cleaned).strip(_EDGE_JUNK)
    cleaned = _drop_determiners(cleaned)
    return _finish(cleaned, POSITION_MAX_TOKENS, POSITION_MAX_LENGTH)


def sanitize_company(value: Optional[str]) -> Optional[str]:
    """
    Clean a company candidate.

    Strips boilerplate phrases, cuts at the first sentence end, removes
    leading determiners, title-cases and keeps at most five words.

    Args:
        value: Raw candidate (may be None)

    Returns:
        Sanitized company name, or None when the candidate is rejected
    """
    if not value:
        return None
    return _until_stable(_company_pass, value)


def sanitize_position(value: Optional[str]) -> Optional[str]:
    """
    Clean a position candidate.

    Like sanitize_company, but cuts at any terminator, drops trailing
    "at X" / "with X" / "for X" clauses and keeps at most six words.

    Args:
        value: Raw candidate (may be None)

    Returns:
        Sanitized position title, or None when the candidate is rejected
    """
    if not value:
        return None
    return _until_stable(_position_pass, value)

"""
Text processing utilities for the LLM layer.

Prepares email bodies for prompts: quoted replies dropped, whitespace
collapsed, length bounded at a sentence boundary.
"""

import re

_QUOTED_REPLY = re.compile(r"^\s*(>.*|On .{0,200}wrote:\s*)$", re.MULTILINE)
_BLANK_RUNS = re.compile(r"\n\s*\n+")
_SPACES = re.compile(r"[ \t ]+")


def truncate_at_sentence_boundary(text: str, max_chars: int) -> str:
    """
    Truncate text at the nearest sentence boundary before max_chars.

    Looks for sentence-ending punctuation (. ! ?) followed by whitespace
    or end of text.

    Args:
        text: Text to truncate
        max_chars: Maximum character count

    Returns:
        Truncated text ending at a sentence boundary, or cut at the last
        word boundary (or hard-cut) when no sentence ends inside the limit.

    Examples:
        >>> truncate_at_sentence_boundary("Hello. World. Test.", 15)
        'Hello. World.'
    """
    if len(text) <= max_chars:
        return text

    segment = text[:max_chars]
    matches = list(re.finditer(r"[.!?](?:\s|$)", segment))
    if matches:
        cutoff = matches[-1].end()
        if segment[cutoff - 1 : cutoff].isspace():
            cutoff -= 1
        return text[:cutoff]

    last_space = segment.rfind(" ")
    if last_space > max_chars * 0.8:
        return text[:last_space]
    return text[:max_chars]


def clean_body_for_prompt(body: str, max_chars: int) -> str:
    """
    Drop quoted reply lines, collapse whitespace and bound the length.

    Args:
        body: Plain-text body
        max_chars: Character budget for the prompt

    Returns:
        Cleaned body, at most max_chars long
    """
    cleaned = _QUOTED_REPLY.sub("", body or "")
    cleaned = _SPACES.sub(" ", cleaned)
    cleaned = _BLANK_RUNS.sub("\n\n", cleaned).strip()
    return truncate_at_sentence_boundary(cleaned, max_chars)

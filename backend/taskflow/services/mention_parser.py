"""Lexical extraction of @mention tokens from comment bodies.

A token starts at an ``@`` that is not glued to a preceding word character
and runs through:

- word characters (letters, digits, underscore);
- ``.`` and ``-`` separators followed by a word character;
- an embedded ``@`` followed by a word character (``@alice@example.com``);
- a single space followed by an upper-case letter (``@Jane Doe``).

Nothing is resolved here; the scan is pure so it can be tested without a store.
"""

from __future__ import annotations

MENTION_PREFIX = "@"
SEPARATOR_CHARS: frozenset[str] = frozenset({".", "-"})
SPACE_CONTINUATION = " "


def is_word_char(ch: str) -> bool:
    return bool(ch) and (ch.isalnum() or ch == "_")


def _is_separator(ch: str) -> bool:
    return ch in SEPARATOR_CHARS


def _is_embedded_at(ch: str) -> bool:
    return ch == MENTION_PREFIX


def _is_name_continuation(ch: str, nxt: str) -> bool:
    return ch == SPACE_CONTINUATION and bool(nxt) and nxt.isupper()


def _char_at(text: str, index: int) -> str:
    return text[index] if 0 <= index < len(text) else ""


def starts_token(text: str, index: int) -> bool:
    """True when ``text[index]`` is an ``@`` that opens a mention."""
    if _char_at(text, index) != MENTION_PREFIX:
        return False
    if is_word_char(_char_at(text, index - 1)):
        # Part of a plain address like bob@example.com.
        return False
    return is_word_char(_char_at(text, index + 1))


def scan_token_end(text: str, start: int) -> int:
    """Return the exclusive end of the token whose ``@`` sits at ``start``."""
    pos = start + 1
    while pos < len(text):
        ch = text[pos]
        nxt = _char_at(text, pos + 1)
        if is_word_char(ch):
            pos += 1
        elif (_is_separator(ch) or _is_embedded_at(ch)) and is_word_char(nxt):
            pos += 1
        elif _is_name_continuation(ch, nxt):
            pos += 1
        else:
            break
    return pos


def parse_mentions(text: str | None) -> list[str]:
    """Extract distinct mention tokens in first-seen order, original case kept."""
    if not text:
        return []

    tokens: list[str] = []
    seen: set[str] = set()
    pos = 0
    while pos < len(text):
        if not starts_token(text, pos):
            pos += 1
            continue
        end = scan_token_end(text, pos)
        token = text[pos:end]
        if token not in seen:
            seen.add(token)
            tokens.append(token)
        pos = end
    return tokens

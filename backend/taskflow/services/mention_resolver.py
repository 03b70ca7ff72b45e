"""Resolve mention tokens to candidate user ids."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..models import User
from .mention_parser import MENTION_PREFIX

logger = logging.getLogger(__name__)


def mention_search_term(token: str) -> str:
    """Drop the leading ``@`` and surrounding whitespace."""
    term = token[1:] if token.startswith(MENTION_PREFIX) else token
    return term.strip()


def search_term_variants(term: str) -> list[str]:
    """
    The term followed by its prefixes with trailing words dropped.

    ``"bob I"`` gives ``["bob I", "bob"]``: a capitalised sentence word glued
    onto the mention must not hide the user it names.
    """
    words = term.split()
    return [" ".join(words[:size]) for size in range(len(words), 0, -1)]


def is_email_shaped(term: str) -> bool:
    return "@" in term and "." in term


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _match_term(db: Session, term: str) -> set[UUID]:
    lowered = term.lower()
    pattern = f"%{_escape_like(lowered)}%"

    if is_email_shaped(term):
        exact = db.query(User.id).filter(func.lower(User.email) == lowered).all()
        contained = db.query(User.id).filter(User.email.ilike(pattern, escape="\\")).all()
        return {row[0] for row in exact} | {row[0] for row in contained}

    rows = db.query(User.id).filter(
        or_(
            User.name.ilike(pattern, escape="\\"),
            User.email.ilike(pattern, escape="\\"),
        )
    ).all()
    return {row[0] for row in rows}


def resolve_mention(db: Session, token: str) -> set[UUID]:
    """
    Return every user id the token could denote (possibly empty).

    Email-shaped terms match emails exactly or by containment; any other term
    matches a substring of the display name or the email. Ambiguous tokens
    resolve to all candidates. A multi-word token that matches nobody is
    retried with its trailing words dropped, longest first.
    """
    term = mention_search_term(token)
    if not term:
        return set()

    for variant in search_term_variants(term):
        matched = _match_term(db, variant)
        if matched:
            if variant != term:
                logger.debug("Mention %r resolved as %r", token, variant)
            return matched

    logger.info("Mention %r matched no user", token)
    return set()


def resolve_mentions(db: Session, tokens: list[str]) -> set[UUID]:
    """Union of candidates across all tokens of one comment."""
    resolved: set[UUID] = set()
    for token in tokens:
        resolved |= resolve_mention(db, token)
    return resolved

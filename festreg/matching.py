"""UTR matching of pending registrations against bank statement text."""

import logging
import re

from festreg import Registration, UtrMatch

log = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r'\s+')


def normalize_statement(text: str) -> str:
    """Remove every whitespace character from extracted statement text.

    PDF extraction tends to split one reference number across spaces or
    line wraps when the statement is laid out in columns; dropping all
    whitespace joins those pieces back into one digit run.
    """
    return _WHITESPACE_RE.sub('', text)


def utr_matches(utr: str, normalized_text: str) -> bool:
    """Check whether a claimed UTR occurs in the normalized statement.

    An empty or whitespace-only UTR never matches, including against
    empty text.
    """
    utr = utr.strip() if utr else ''
    if not utr:
        return False
    return utr in normalized_text


def match_utrs(pending: list[Registration], statement_text: str) -> list[UtrMatch]:
    """Find the pending registrations whose UTR appears in a statement.

    Plain substring containment: a UTR that is part of a longer digit
    run matches, and two registrations claiming the same UTR both
    match. Results are candidates for operator review, never an
    authoritative verification.

    Args:
        pending: Registrations to check, in display order.
        statement_text: Full extracted text of the statement.

    Returns:
        Matches in input order. Registrations that are already
        completed are never returned.
    """
    normalized = normalize_statement(statement_text)

    matches: list[UtrMatch] = []
    for reg in pending:
        if not reg.is_pending:
            continue
        if utr_matches(reg.utr_number, normalized):
            matches.append(UtrMatch(
                id=reg.id,
                event_id=reg.event_id,
                team_number=reg.team_number,
                event_name=reg.event_name,
                utr_number=reg.utr_number,
            ))

    log.info(
        "UTR matching done: %d of %d pending registrations matched",
        len(matches), len(pending),
    )
    return matches

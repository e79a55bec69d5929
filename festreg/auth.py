"""Operator authorization for mutating operations.

A single shared PIN unlocks edit capability. It identifies nobody and is
not rate limited, so it only gates accidental edits; it is not a
security boundary.
"""

import hmac
import logging
from dataclasses import dataclass

log = logging.getLogger(__name__)


class AuthorizationError(Exception):
    """The caller lacks the capability for a mutating operation."""


@dataclass(frozen=True)
class AdminContext:
    """Who is acting, and whether they may edit registrations."""

    operator: str
    can_edit: bool = False


def unlock(pin: str, expected_pin: str | None, operator: str = 'admin') -> AdminContext:
    """Exchange the shared PIN for an edit-capable context.

    Raises:
        AuthorizationError: If no PIN is configured or the PIN is wrong.
    """
    if not expected_pin:
        raise AuthorizationError("Editing is disabled: no edit PIN is configured.")
    if not hmac.compare_digest(pin.strip().encode(), expected_pin.encode()):
        log.warning("Rejected edit PIN for operator %s", operator)
        raise AuthorizationError("Incorrect PIN")
    return AdminContext(operator=operator, can_edit=True)


def require_edit(context: AdminContext | None) -> None:
    if context is None or not context.can_edit:
        raise AuthorizationError("Edit mode is locked. Enter the edit PIN first.")

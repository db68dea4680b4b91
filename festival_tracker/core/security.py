"""
Operator Authorization

Operator-only actions (dashboard reads, cache refresh, settings) require the
X-Admin-Token header to match ADMIN_TOKEN. When no token is configured every
operator action is denied.
"""

import secrets
from typing import Optional

from festival_tracker.core.exceptions import AuthorizationError
from festival_tracker.core.setting import settings


def verify_operator_token(
    token: Optional[str],
    action: str,
    expected: Optional[str] = None
) -> None:
    """
    Check an operator token.

    Args:
        token: Token supplied by the caller
        action: Human readable action name, used in the error message
        expected: Token to compare against (defaults to settings.ADMIN_TOKEN)

    Raises:
        AuthorizationError: If no token is configured or the token does not match
    """
    expected = expected if expected is not None else settings.ADMIN_TOKEN
    if not expected or not token:
        raise AuthorizationError(action)

    if not secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise AuthorizationError(action)

"""
Input Validators and Sanitizers

This module provides validation functions for user inputs.

Security Considerations:
- Festival IDs reach SQL only as bound parameters, but are still
  restricted to a strict alphabet before a row is ever created
- Redirect targets are limited to http/https to prevent javascript:/data:
  redirects
- Length limits prevent DoS attacks
"""

import re
from typing import Optional
from urllib.parse import urlparse

FESTIVAL_ID_PATTERN = re.compile(r"[A-Za-z0-9]{6}")

MAX_URL_LENGTH = 2048


def sanitize_festival_id(festival_id: Optional[str]) -> Optional[str]:
    """
    Validate festival ID format.

    A festival ID is exactly 6 ASCII alphanumeric characters. Nothing is
    stripped or normalized: ' ABC123' and 'ABC123\\n' are rejected.

    Args:
        festival_id: Raw value of the tracking query parameter

    Returns:
        The festival ID if valid, None otherwise
    """
    if not festival_id or not isinstance(festival_id, str):
        return None

    if not FESTIVAL_ID_PATTERN.fullmatch(festival_id):
        return None

    return festival_id


def is_valid_url(url: str) -> bool:
    """
    Validate an absolute redirect URL.

    Args:
        url: The URL string to validate

    Returns:
        True if the URL is an absolute http(s) URL with a host
    """
    if not url or not isinstance(url, str):
        return False

    if len(url) > MAX_URL_LENGTH:
        return False

    if any(char.isspace() for char in url):
        return False

    try:
        result = urlparse(url)
    except ValueError:
        return False

    if result.scheme.lower() not in {"http", "https"}:
        return False

    if not result.hostname:
        return False

    return True

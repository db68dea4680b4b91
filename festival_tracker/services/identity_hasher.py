"""
Identity Hasher

Derives a privacy-preserving visitor fingerprint from IP + user agent.

The UTC calendar day is part of the hashed message, so the same visitor gets
the same hash all day (daily unique counting works) and a new one after
midnight UTC (no long-term visitor profile). The hash is keyed with
VISITOR_HASH_SECRET so it cannot be recomputed from a guessed IP.
"""

import hashlib
from datetime import date

UNKNOWN_USER_AGENT = "unknown"

# BLAKE2b accepts keys of at most 64 bytes
MAX_KEY_LENGTH = 64


class IdentityHasher:
    """Keyed, day-rotating visitor hash (32 lowercase hex chars)."""

    def __init__(self, secret: str = ""):
        key = secret.encode("utf-8")
        if len(key) > MAX_KEY_LENGTH:
            key = hashlib.sha256(key).digest()
        self._key = key

    def hash(self, ip_address: str, user_agent: str, day: date) -> str:
        """
        Hash a visitor for one UTC day.

        Args:
            ip_address: Resolved client IP
            user_agent: User-Agent header (None/empty hashes as "unknown")
            day: UTC calendar day

        Returns:
            32-character lowercase hex digest
        """
        message = f"{ip_address}{user_agent or UNKNOWN_USER_AGENT}{day:%Y%m%d}"
        digest = hashlib.blake2b(
            message.encode("utf-8"),
            key=self._key,
            digest_size=16
        )
        return digest.hexdigest()

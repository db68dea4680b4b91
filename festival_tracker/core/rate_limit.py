"""
Rate Limiting Configuration

This module provides rate limiting for the operator API endpoints.

Design Decisions:
- Uses slowapi for the operator API (lightweight, FastAPI-compatible, 429 on excess)
- IP-based limiting
- The public tracking path is NOT limited here: it must drop excess
  requests silently instead of answering 429, see services/request_gate.py
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Initialize rate limiter
# Uses IP address for rate limiting
limiter = Limiter(key_func=get_remote_address)

# Rate limit configurations per endpoint
# Format: "count/period" (e.g., "10/minute" means 10 requests per minute)
RATE_LIMITS = {
    "stats": "30/minute",  # Dashboard queries: 30 per minute per IP
    "refresh": "5/minute",  # Cache purges: 5 per minute per IP
    "settings": "10/minute",  # Settings reads/writes: 10 per minute per IP
}

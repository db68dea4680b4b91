"""
Redirect Policy

Decides whether and where a validated visitor is forwarded after logging.

Design Decisions:
- The decision is a pure function of an explicit RedirectConfig and the
  festival ID, no global option lookups
- The caller decides only after the event append has been attempted
- The festival ID replaces any id parameter already on the destination;
  other parameters and the fragment are kept
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote_plus, unquote_plus, urlsplit, urlunsplit

from festival_tracker.core.setting import settings
from festival_tracker.core.validators import is_valid_url


@dataclass(frozen=True)
class RedirectConfig:
    """Operator-controlled redirect settings."""
    enabled: bool = False
    destination_url: str = ""


@dataclass(frozen=True)
class RedirectDecision:
    """Result of RedirectPolicy.decide: a target URL or no redirect."""
    url: Optional[str] = None

    @property
    def should_redirect(self) -> bool:
        return self.url is not None


NO_REDIRECT = RedirectDecision()


def with_query_param(url: str, name: str, value: str) -> str:
    """
    Set one query parameter on a URL.

    The first existing occurrence is replaced in place and later duplicates
    are dropped; if the parameter is absent it is appended. Every other
    pair of the query string is kept exactly as written.
    """
    parts = urlsplit(url)
    pair = f"{quote_plus(name)}={quote_plus(value)}"
    pairs = []
    replaced = False
    for existing in parts.query.split("&") if parts.query else []:
        if unquote_plus(existing.split("=", 1)[0]) == name:
            if not replaced:
                pairs.append(pair)
                replaced = True
            continue
        pairs.append(existing)
    if not replaced:
        pairs.append(pair)

    return urlunsplit(parts._replace(query="&".join(pairs)))


class RedirectPolicy:
    """
    Service for deciding post-tracking redirects.
    """

    def __init__(self, param_name: str = settings.TRACKING_PARAM):
        self.param_name = param_name

    def decide(self, config: RedirectConfig, festival_id: str) -> RedirectDecision:
        """
        Decide the redirect for one accepted request.

        Args:
            config: Current redirect settings
            festival_id: The accepted festival ID

        Returns:
            RedirectDecision with the target URL, or NO_REDIRECT
        """
        if not config.enabled or not config.destination_url:
            return NO_REDIRECT

        if not is_valid_url(config.destination_url):
            return NO_REDIRECT

        return RedirectDecision(
            url=with_query_param(config.destination_url, self.param_name, festival_id)
        )

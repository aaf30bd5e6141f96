"""
Domain-level email checks: live MX records and disposable providers.

DomainVerifier fails closed: any resolution problem is a rejection and
callers cannot tell a missing domain from an unreachable resolver.
"""

import logging
from dataclasses import dataclass, field

from .email_format import ALLOWED_DOMAINS, EmailFormatValidator
from .exceptions import MxLookupFailed
from .ports import MxResolver

logger = logging.getLogger(__name__)

DISPOSABLE_DOMAINS = frozenset(
    {
        "tempmail.com",
        "temp-mail.org",
        "guerrillamail.com",
        "mailinator.com",
        "10minutemail.com",
        "yopmail.com",
        "throwawaymail.com",
        "getairmail.com",
        "dispostable.com",
    }
)


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1]


@dataclass
class DomainVerifier:
    """Confirms an allow-listed email domain publishes MX records."""

    resolver: MxResolver
    format_validator: EmailFormatValidator = field(default_factory=EmailFormatValidator)
    allowed_domains: tuple[str, ...] = ALLOWED_DOMAINS

    def is_live(self, email: str) -> bool:
        # Format is re-checked here even though the orchestrator ran it first
        if not self.format_validator.is_valid(email):
            return False

        domain = email_domain(email)
        if domain not in self.allowed_domains:
            return False

        try:
            records = self.resolver.resolve_mx(domain)
        except (MxLookupFailed, TimeoutError, OSError) as e:
            logger.warning("MX lookup failed for %s: %s", domain, e)
            return False

        return len(records) > 0


class DisposableDomainFilter:
    """Membership test against known temporary-mail providers."""

    def __init__(self, domains: frozenset[str] = DISPOSABLE_DOMAINS) -> None:
        self._domains = domains

    def is_disposable(self, email: str) -> bool:
        return email_domain(email).lower() in self._domains

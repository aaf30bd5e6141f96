"""
Deliverability oracle - external mailbox assessment with a fail-open policy.

Unlike the MX check, an unavailable or unconfigured deliverability
service never blocks registration: any upstream failure is treated as
acceptable.
"""

import logging
from dataclasses import dataclass

from .email_domain import email_domain
from .exceptions import DeliverabilityNotConfigured, DeliverabilityUnavailable
from .ports import DeliverabilityClient, DeliverabilityVerdict

logger = logging.getLogger(__name__)


@dataclass
class DeliverabilityOracle:
    """
    Decides whether an email is acceptable based on the external verdict.

    Attributes:
        client: Adapter for the external validation service
        bypass_enabled: True only in the low-stakes development mode
        bypass_domains: Domains accepted without a call when bypass is enabled
    """

    client: DeliverabilityClient
    bypass_enabled: bool = False
    bypass_domains: tuple[str, ...] = ("gmail.com",)

    def is_acceptable(self, email: str) -> bool:
        if self.bypass_enabled and email_domain(email) in self.bypass_domains:
            logger.info("Development mode: skipping deliverability check")
            return True

        try:
            verdict = self.client.check(email)
        except DeliverabilityNotConfigured:
            logger.warning("Deliverability API key not configured, accepting email")
            return True
        except DeliverabilityUnavailable as e:
            logger.warning("Deliverability check failed, accepting email: %s", e)
            return True

        return self.evaluate(verdict)

    @staticmethod
    def evaluate(verdict: DeliverabilityVerdict) -> bool:
        """
        Apply the acceptance policy to a verdict.

        All must hold: valid format, deliverable, free-mail provider,
        not disposable, not a role account. A verdict with no recognizable
        fields at all is treated as an unusable response and accepted.
        A field that is missing from an otherwise usable verdict counts
        as not satisfied.
        """
        if verdict.is_empty:
            logger.warning("Deliverability response had no recognizable fields, accepting email")
            return True

        return (
            verdict.format_valid is True
            and verdict.deliverable is True
            and verdict.free_mail is True
            and verdict.disposable is not True
            and verdict.role_email is not True
        )

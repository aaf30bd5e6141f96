"""
Domain exceptions - Semantic error types for registration and authentication.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ports import Account, RegistrationStage


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class ValidationRejected(RegistrationError):
    """Email rejected by the registration pipeline. No account was created."""

    def __init__(self, reason: str, stage: RegistrationStage) -> None:
        super().__init__(reason)
        self.reason = reason
        self.stage = stage


class EmailAlreadyRegistered(RegistrationError):
    """Email is already bound to an account."""

    pass


class TokenInvalidOrExpired(RegistrationError):
    """Token or code is wrong, already used, or past its expiry."""

    def __init__(self) -> None:
        super().__init__("Invalid or expired token")


class InvalidCredentials(RegistrationError):
    """Password mismatch or unknown account (deliberately indistinguishable)."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class InvalidSession(RegistrationError):
    """Session token is malformed, tampered with, or expired."""

    pass


class AlreadyVerified(RegistrationError):
    """Verification requested for an account that is already verified."""

    pass


class NotificationFailed(RegistrationError):
    """
    Outbound notification could not be delivered.

    The account stays persisted and unverified; its token fields have
    been rolled back.
    """

    def __init__(self, account: Account) -> None:
        super().__init__("Email could not be sent")
        self.account = account


# Upstream errors raised by adapters. The domain decides how each one
# resolves: MX failures fail closed, deliverability failures fail open.


class MxLookupFailed(Exception):
    """MX resolution failed (timeout, NXDOMAIN, no answer, network error)."""

    pass


class DeliverabilityUnavailable(Exception):
    """The external deliverability service could not produce a verdict."""

    pass


class DeliverabilityNotConfigured(DeliverabilityUnavailable):
    """No credential is configured for the external deliverability service."""

    pass


class NotificationError(Exception):
    """An EmailSender adapter failed to deliver a message."""

    pass

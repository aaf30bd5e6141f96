"""
Domain layer - Registration and authentication policy with no web or
database framework imports.

This package contains the email anti-abuse pipeline, the password and
token lifecycle, and the port interfaces that infrastructure adapters
implement.
"""

from .authentication import AuthenticatedSession, AuthenticationService
from .credentials import CredentialManager, SessionClaims
from .deliverability import DeliverabilityOracle
from .email_domain import DisposableDomainFilter, DomainVerifier
from .email_format import EmailFormatValidator, FormatRule
from .exceptions import (
    AlreadyVerified,
    DeliverabilityNotConfigured,
    DeliverabilityUnavailable,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidSession,
    MxLookupFailed,
    NotificationError,
    NotificationFailed,
    RegistrationError,
    TokenInvalidOrExpired,
    ValidationRejected,
)
from .ports import (
    Account,
    AccountKind,
    AccountRepository,
    DeliverabilityClient,
    DeliverabilityVerdict,
    EmailSender,
    MxResolver,
    RegistrationStage,
)
from .registration import EmailCheck, RegistrationOutcome, RegistrationService
from .tokens import IssuedCode, IssuedToken, ResetWindow, TokenIssuer

__all__ = [
    "Account",
    "AccountKind",
    "AccountRepository",
    "AlreadyVerified",
    "AuthenticatedSession",
    "AuthenticationService",
    "CredentialManager",
    "DeliverabilityClient",
    "DeliverabilityNotConfigured",
    "DeliverabilityOracle",
    "DeliverabilityUnavailable",
    "DeliverabilityVerdict",
    "DisposableDomainFilter",
    "DomainVerifier",
    "EmailAlreadyRegistered",
    "EmailCheck",
    "EmailFormatValidator",
    "EmailSender",
    "FormatRule",
    "InvalidCredentials",
    "InvalidSession",
    "IssuedCode",
    "IssuedToken",
    "MxLookupFailed",
    "MxResolver",
    "NotificationError",
    "NotificationFailed",
    "RegistrationError",
    "RegistrationOutcome",
    "RegistrationService",
    "RegistrationStage",
    "ResetWindow",
    "SessionClaims",
    "TokenInvalidOrExpired",
    "TokenIssuer",
    "ValidationRejected",
]

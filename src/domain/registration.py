"""
Registration domain service - email pipeline and account lifecycle.

This module sequences the anti-abuse email checks and the account
creation/verification lifecycle.

Registration State Machine
==========================

    NEW
     -> FORMAT_CHECKED          (EmailFormatValidator)
     -> DOMAIN_CHECKED          (DomainVerifier, fails closed)
     -> NOT_DISPOSABLE          (DisposableDomainFilter)
     -> DELIVERABILITY_CHECKED  (DeliverabilityOracle, fails open)
     -> ACCOUNT_CREATED         (argon2id hash, unique insert)
     -> VERIFICATION_TOKEN_ISSUED
     -> DEV_BYPASS_VERIFIED | NOTIFICATION_SENT | NOTIFICATION_FAILED

Any rejection before ACCOUNT_CREATED aborts with no writes. When the
verification mail cannot be delivered the token fields are rolled back,
the account stays created but unverified, and the caller gets a delivery
failure rather than a validation failure. Auto-verification is confined
to the development mode flag injected at construction.
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from .credentials import CredentialManager
from .deliverability import DeliverabilityOracle
from .email_domain import DisposableDomainFilter, DomainVerifier
from .email_format import EmailFormatValidator
from .exceptions import (
    AlreadyVerified,
    EmailAlreadyRegistered,
    NotificationError,
    NotificationFailed,
    TokenInvalidOrExpired,
    ValidationRejected,
)
from .ports import Account, AccountKind, AccountRepository, EmailSender, RegistrationStage
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)

INVALID_FORMAT_REASON = (
    "Invalid email format. Please provide a valid Gmail or ProtonMail address."
)
DOMAIN_REASON = "Invalid email address. Please provide a valid Gmail or ProtonMail address."
DISPOSABLE_REASON = "Temporary email addresses are not allowed"
UNDELIVERABLE_REASON = (
    "This email appears to be invalid or undeliverable. Please provide a valid email address."
)

VERIFICATION_SUBJECT = "JobSecure - Email Verification"
RESEND_SUBJECT = "JobSecure - Verify Your Email"


def normalize_email(email: str) -> str:
    """Strip whitespace and lowercase for consistent storage and lookup."""
    return email.strip().lower()


@dataclass(frozen=True)
class EmailCheck:
    """Outcome of the registration email pipeline."""

    email: str
    accepted: bool
    stage: RegistrationStage
    reason: str | None = None


@dataclass(frozen=True)
class RegistrationOutcome:
    """Result of a completed registration."""

    account: Account
    stage: RegistrationStage
    session_token: str


@dataclass
class RegistrationService:
    """
    Domain service for user registration.

    Orchestrates the email pipeline, account creation, verification
    token issuance and notification delivery.
    """

    repository: AccountRepository
    email_sender: EmailSender
    credentials: CredentialManager
    tokens: TokenIssuer
    domain_verifier: DomainVerifier
    deliverability: DeliverabilityOracle
    format_validator: EmailFormatValidator = field(default_factory=EmailFormatValidator)
    disposable_filter: DisposableDomainFilter = field(default_factory=DisposableDomainFilter)
    auto_verify: bool = False
    public_base_url: str = "http://localhost:8000"

    def validate_registration(self, email: str) -> EmailCheck:
        """
        Run the email pipeline without side effects on the account store.

        Checks run in strict order and stop at the first rejection.
        """
        email = normalize_email(email)

        violation = self.format_validator.first_violation(email)
        if violation is not None:
            logger.debug("Format rule %s rejected registration email", violation.value)
            return EmailCheck(email, False, RegistrationStage.NEW, INVALID_FORMAT_REASON)

        if not self.domain_verifier.is_live(email):
            return EmailCheck(email, False, RegistrationStage.FORMAT_CHECKED, DOMAIN_REASON)

        if self.disposable_filter.is_disposable(email):
            return EmailCheck(email, False, RegistrationStage.DOMAIN_CHECKED, DISPOSABLE_REASON)

        if not self.deliverability.is_acceptable(email):
            return EmailCheck(
                email, False, RegistrationStage.NOT_DISPOSABLE, UNDELIVERABLE_REASON
            )

        return EmailCheck(email, True, RegistrationStage.DELIVERABILITY_CHECKED)

    def create_account(self, name: str, email: str, password: str, kind: AccountKind) -> Account:
        """
        Hash the password and insert the account.

        The hash is computed before the insert, so a hashing failure leaves
        nothing persisted.

        Raises:
            EmailAlreadyRegistered: If the email is already taken, including
                when a concurrent registration won the race
        """
        email = normalize_email(email)
        password_hash = self.credentials.hash_password(password)

        account = self.repository.create_account(name.strip(), email, password_hash, kind)
        if account is None:
            raise EmailAlreadyRegistered(email)

        logger.info("Account created: %s (%s)", account.id, kind.value)
        return account

    def issue_verification_token(self, account: Account) -> str:
        """Issue a 24h verification token, replacing any previous one. Returns the raw value."""
        issued = self.tokens.issue_verification_token()
        self.repository.set_verification_token(account.id, issued.digest, issued.expires_at)
        return issued.raw

    def register(
        self, name: str, email: str, password: str, kind: AccountKind
    ) -> RegistrationOutcome:
        """
        Run the full registration state machine.

        Raises:
            ValidationRejected: Email failed one of the pipeline checks
            EmailAlreadyRegistered: Email already bound to an account
            NotificationFailed: Account created but the verification mail
                could not be sent
        """
        check = self.validate_registration(email)
        if not check.accepted:
            raise ValidationRejected(check.reason, check.stage)

        account = self.create_account(name, check.email, password, kind)
        raw_token = self.issue_verification_token(account)

        if self.auto_verify:
            logger.info("Development mode: auto-verifying account %s", account.id)
            account = self.repository.mark_verified(account.id)
            return RegistrationOutcome(
                account=account,
                stage=RegistrationStage.DEV_BYPASS_VERIFIED,
                session_token=self.credentials.issue_session_token(account),
            )

        url = f"{self.public_base_url}/v1/auth/verify-email/{raw_token}"
        body = (
            "<h1>Email Verification</h1>\n"
            "<p>Please verify your email by clicking on the link below:</p>\n"
            f'<a href="{url}" target="_blank">Verify Email</a>\n'
        )
        try:
            self.email_sender.send(account.email, VERIFICATION_SUBJECT, body)
        except NotificationError as e:
            logger.warning("Verification mail to account %s failed: %s", account.id, e)
            self.repository.clear_verification_token(account.id)
            raise NotificationFailed(self.repository.get_by_id(account.id) or account) from e

        return RegistrationOutcome(
            account=account,
            stage=RegistrationStage.NOTIFICATION_SENT,
            session_token=self.credentials.issue_session_token(account),
        )

    def verify_email(self, raw_token: str) -> Account:
        """
        Consume a link verification token.

        Raises:
            TokenInvalidOrExpired: Wrong, used or expired token
        """
        account = self.repository.consume_verification_token(
            self.tokens.digest(raw_token), self.tokens.now()
        )
        if account is None:
            raise TokenInvalidOrExpired()
        logger.info("Account verified: %s", account.id)
        return account

    def verify_email_code(self, email: str, code: str) -> Account:
        """
        Consume a 6-digit resend code (plaintext comparison).

        Raises:
            TokenInvalidOrExpired: Unknown email, wrong, used or expired code
        """
        account = self.repository.consume_verification_code(
            normalize_email(email), code.strip(), self.tokens.now()
        )
        if account is None:
            raise TokenInvalidOrExpired()
        logger.info("Account verified by code: %s", account.id)
        return account

    def resend_verification(self, account_id: UUID) -> None:
        """
        Issue a fresh 6-digit code and mail it.

        Raises:
            TokenInvalidOrExpired: Account no longer exists
            AlreadyVerified: Nothing left to verify
            NotificationFailed: Code stored but the mail could not be sent;
                the code is left in place so a retry can overwrite it
        """
        account = self.repository.get_by_id(account_id)
        if account is None:
            raise TokenInvalidOrExpired()
        if account.is_verified:
            raise AlreadyVerified("Email already verified")

        issued = self.tokens.issue_verification_code()
        self.repository.set_verification_code(account.id, issued.code, issued.expires_at)

        body = (
            "<h1>JobSecure Email Verification</h1>\n"
            "<p>Thank you for registering with JobSecure, the secure freelance marketplace.</p>\n"
            f"<p>Your verification code is: <strong>{issued.code}</strong></p>\n"
            "<p>This code will expire in 1 hour.</p>\n"
            "<p>If you did not request this code, please ignore this email.</p>\n"
        )
        try:
            self.email_sender.send(account.email, RESEND_SUBJECT, body)
        except NotificationError as e:
            logger.warning("Verification code mail to account %s failed: %s", account.id, e)
            raise NotificationFailed(account) from e

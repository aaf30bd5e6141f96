"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the account data model and the interfaces (ports)
that the domain requires from infrastructure. Adapters implement these
protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID


class AccountKind(str, Enum):
    """Fixed set of account kinds."""

    FREELANCER = "freelancer"
    EMPLOYER = "employer"


class RegistrationStage(str, Enum):
    """
    Registration state machine stages.

    Transitions fire in strict order:

        NEW -> FORMAT_CHECKED -> DOMAIN_CHECKED -> NOT_DISPOSABLE
            -> DELIVERABILITY_CHECKED -> ACCOUNT_CREATED
            -> VERIFICATION_TOKEN_ISSUED
            -> DEV_BYPASS_VERIFIED | NOTIFICATION_SENT | NOTIFICATION_FAILED

    A rejection before ACCOUNT_CREATED aborts with no writes. The stage
    carried by a rejection is the last stage that was reached.
    """

    NEW = "new"
    FORMAT_CHECKED = "format_checked"
    DOMAIN_CHECKED = "domain_checked"
    NOT_DISPOSABLE = "not_disposable"
    DELIVERABILITY_CHECKED = "deliverability_checked"
    ACCOUNT_CREATED = "account_created"
    VERIFICATION_TOKEN_ISSUED = "verification_token_issued"
    DEV_BYPASS_VERIFIED = "dev_bypass_verified"
    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_FAILED = "notification_failed"


@dataclass(frozen=True)
class Account:
    """
    Identity record.

    Only digests of verification/reset tokens are held here. The 6-digit
    resend code is the one piece of token material kept in plaintext.
    """

    id: UUID
    name: str
    email: str
    password_hash: str
    kind: AccountKind
    is_verified: bool
    created_at: datetime
    verification_token_hash: str | None = None
    verification_token_expires_at: datetime | None = None
    verification_code: str | None = None
    verification_code_expires_at: datetime | None = None
    reset_token_hash: str | None = None
    reset_token_expires_at: datetime | None = None


@dataclass(frozen=True)
class DeliverabilityVerdict:
    """
    Structured answer from the external deliverability service.

    Every field may be absent (None) when the service omits it.
    """

    format_valid: bool | None = None
    deliverable: bool | None = None
    free_mail: bool | None = None
    disposable: bool | None = None
    role_email: bool | None = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.format_valid,
                self.deliverable,
                self.free_mail,
                self.disposable,
                self.role_email,
            )
        )


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def create_account(
        self, name: str, email: str, password_hash: str, kind: AccountKind
    ) -> Account | None:
        """
        Insert a new unverified account.

        Relies on the storage uniqueness constraint on email; no
        existence pre-check is made.

        Returns:
            The created Account, or None if the email is already taken
        """
        ...

    def get_by_id(self, account_id: UUID) -> Account | None: ...

    def get_by_email(self, email: str) -> Account | None: ...

    def set_verification_token(
        self, account_id: UUID, token_hash: str, expires_at: datetime
    ) -> None:
        """Store a verification token digest, overwriting any previous one."""
        ...

    def clear_verification_token(self, account_id: UUID) -> None: ...

    def consume_verification_token(self, token_hash: str, now: datetime) -> Account | None:
        """
        Atomically verify the account holding this token digest.

        Single conditional update: only matches when the digest is stored
        and expires_at > now. Clears all verification material and marks
        the account verified.

        Returns:
            The verified Account, or None if no unexpired match exists
        """
        ...

    def set_verification_code(self, account_id: UUID, code: str, expires_at: datetime) -> None:
        """Store a plaintext 6-digit code, overwriting any previous one."""
        ...

    def consume_verification_code(self, email: str, code: str, now: datetime) -> Account | None:
        """Atomically verify the account if its stored code matches and is unexpired."""
        ...

    def mark_verified(self, account_id: UUID) -> Account:
        """Mark verified and clear verification material unconditionally."""
        ...

    def set_reset_token(self, account_id: UUID, token_hash: str, expires_at: datetime) -> None:
        """Store a reset token digest, overwriting any previous one."""
        ...

    def clear_reset_token(self, account_id: UUID) -> None: ...

    def consume_reset_token(
        self, token_hash: str, new_password_hash: str, now: datetime
    ) -> Account | None:
        """
        Atomically replace the password of the account holding this digest.

        Only matches when the digest is stored and expires_at > now.
        Clears the reset token fields in the same update.
        """
        ...

    def update_password_hash(self, account_id: UUID, password_hash: str) -> None:
        """Replace the password hash and drop any outstanding reset token."""
        ...


class EmailSender(Protocol):
    """Port interface for outbound notifications."""

    def send(self, recipient: str, subject: str, body: str) -> None:
        """
        Deliver a rendered message.

        Raises:
            NotificationError: If delivery fails
        """
        ...


class MxResolver(Protocol):
    """Port interface for mail-exchange lookups."""

    def resolve_mx(self, domain: str) -> list[str]:
        """
        Return the MX hostnames for a domain.

        Raises:
            MxLookupFailed: On timeout, NXDOMAIN, empty answer or network error
        """
        ...


class DeliverabilityClient(Protocol):
    """Port interface for the external deliverability service."""

    def check(self, email: str) -> DeliverabilityVerdict:
        """
        Ask the service about an email address.

        Raises:
            DeliverabilityNotConfigured: No credential configured
            DeliverabilityUnavailable: Call failed or response unusable
        """
        ...

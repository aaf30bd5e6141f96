"""
Authentication domain service - login, sessions and password changes.

All credential failures surface as the same InvalidCredentials error,
and unknown emails still pay for an argon2 verify, so responses do not
reveal whether an account exists.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from .credentials import CredentialManager
from .exceptions import (
    InvalidCredentials,
    InvalidSession,
    NotificationError,
    TokenInvalidOrExpired,
)
from .ports import Account, AccountRepository, EmailSender
from .registration import normalize_email
from .tokens import ResetWindow, TokenIssuer

logger = logging.getLogger(__name__)

RESET_SUBJECT = "JobSecure - Password Reset"


@dataclass(frozen=True)
class AuthenticatedSession:
    account: Account
    session_token: str


@dataclass
class AuthenticationService:
    """Domain service for login, session lookup and password lifecycle."""

    repository: AccountRepository
    email_sender: EmailSender
    credentials: CredentialManager
    tokens: TokenIssuer
    public_base_url: str = "http://localhost:8000"

    def login(self, email: str, password: str) -> AuthenticatedSession:
        """
        Authenticate with email and password.

        Raises:
            InvalidCredentials: Unknown email or wrong password
        """
        account = self.repository.get_by_email(normalize_email(email))
        if account is None:
            self.credentials.burn_verification(password)
            raise InvalidCredentials()

        if not self.credentials.verify_password(account.password_hash, password):
            raise InvalidCredentials()

        return AuthenticatedSession(account, self.credentials.issue_session_token(account))

    def current_account(self, session_token: str) -> Account:
        """
        Resolve a session token to its account.

        Raises:
            InvalidSession: Bad token or the account no longer exists
        """
        claims = self.credentials.decode_session_token(session_token)
        account = self.repository.get_by_id(claims.account_id)
        if account is None:
            raise InvalidSession("Not authorized to access this route")
        return account

    def issue_reset_token(
        self, account: Account, window: ResetWindow = ResetWindow.ACCOUNT
    ) -> str:
        """Issue a reset token for an account, replacing any previous one. Returns the raw value."""
        issued = self.tokens.issue_reset_token(window)
        self.repository.set_reset_token(account.id, issued.digest, issued.expires_at)
        return issued.raw

    def request_password_reset(self, email: str) -> None:
        """
        Mail a reset link if the email belongs to an account.

        Unknown emails return silently. When the mail cannot be sent the
        reset fields are cleared before the error propagates.

        Raises:
            NotificationError: Reset mail delivery failed
        """
        account = self.repository.get_by_email(normalize_email(email))
        if account is None:
            logger.info("Password reset requested for unknown email")
            return

        raw_token = self.issue_reset_token(account, ResetWindow.REQUEST)
        url = f"{self.public_base_url}/reset-password/{raw_token}"
        body = (
            "<h1>JobSecure Password Reset</h1>\n"
            "<p>You are receiving this email because you (or someone else) has requested "
            "the reset of a password.</p>\n"
            "<p>Please click on the following link, or paste it into your browser to "
            "complete the process:</p>\n"
            f'<a href="{url}" target="_blank">Reset Password</a>\n'
            "<p>If you did not request this, please ignore this email and your password "
            "will remain unchanged.</p>\n"
        )
        try:
            self.email_sender.send(account.email, RESET_SUBJECT, body)
        except NotificationError:
            self.repository.clear_reset_token(account.id)
            raise

    def reset_password(self, raw_token: str, new_password: str) -> Account:
        """
        Consume a reset token and store the new password hash in one update.

        Raises:
            TokenInvalidOrExpired: Wrong, used or expired token
        """
        new_hash = self.credentials.hash_password(new_password)
        account = self.repository.consume_reset_token(
            self.tokens.digest(raw_token), new_hash, self.tokens.now()
        )
        if account is None:
            raise TokenInvalidOrExpired()
        logger.info("Password reset for account %s", account.id)
        return account

    def update_password(
        self, account_id: UUID, current_password: str, new_password: str
    ) -> AuthenticatedSession:
        """
        Change the password of an authenticated account.

        Raises:
            InvalidCredentials: Current password does not match
        """
        account = self.repository.get_by_id(account_id)
        if account is None or not self.credentials.verify_password(
            account.password_hash, current_password
        ):
            raise InvalidCredentials()

        self.repository.update_password_hash(account.id, self.credentials.hash_password(new_password))
        logger.info("Password updated for account %s", account.id)
        return AuthenticatedSession(account, self.credentials.issue_session_token(account))

"""
Unit tests for AuthenticationService.

Covers login, session resolution and the password reset/update
lifecycle against the in-memory repository.
"""

import re
from datetime import timedelta
from unittest.mock import Mock
from uuid import uuid4

import pytest

from src.domain.authentication import RESET_SUBJECT, AuthenticationService
from src.domain.exceptions import (
    InvalidCredentials,
    InvalidSession,
    NotificationError,
    TokenInvalidOrExpired,
)
from src.domain.ports import AccountKind
from src.domain.tokens import ResetWindow

EMAIL = "validuser1@protonmail.com"
PASSWORD = "password123"

RESET_LINK = re.compile(r"/reset-password/([0-9a-f]{40})")


@pytest.fixture
def account(repository, credentials):
    return repository.create_account(
        "Valid User", EMAIL, credentials.hash_password(PASSWORD), AccountKind.EMPLOYER
    )


def reset_token_from(email_sender: Mock) -> str:
    return RESET_LINK.search(email_sender.send.call_args[0][2]).group(1)


class TestLogin:
    def test_valid_credentials(
        self, authentication_service: AuthenticationService, account, credentials
    ) -> None:
        session = authentication_service.login(EMAIL, PASSWORD)

        assert session.account.id == account.id
        claims = credentials.decode_session_token(session.session_token)
        assert claims.account_id == account.id
        assert claims.kind == AccountKind.EMPLOYER

    def test_email_is_normalized(
        self, authentication_service: AuthenticationService, account
    ) -> None:
        session = authentication_service.login("  VALIDUSER1@protonmail.com ", PASSWORD)
        assert session.account.id == account.id

    def test_unverified_account_can_log_in(
        self, authentication_service: AuthenticationService, account
    ) -> None:
        assert account.is_verified is False
        assert authentication_service.login(EMAIL, PASSWORD).account.is_verified is False

    def test_wrong_password(self, authentication_service: AuthenticationService, account) -> None:
        with pytest.raises(InvalidCredentials):
            authentication_service.login(EMAIL, "wrong-password")

    def test_unknown_email_burns_a_verification(
        self, authentication_service: AuthenticationService, monkeypatch
    ) -> None:
        burned: list[str] = []
        monkeypatch.setattr(
            authentication_service.credentials, "burn_verification", burned.append
        )

        with pytest.raises(InvalidCredentials):
            authentication_service.login("nobody123@gmail.com", PASSWORD)

        assert burned == [PASSWORD]

    def test_unknown_email_and_wrong_password_look_the_same(
        self, authentication_service: AuthenticationService, account
    ) -> None:
        with pytest.raises(InvalidCredentials) as unknown:
            authentication_service.login("nobody123@gmail.com", PASSWORD)
        with pytest.raises(InvalidCredentials) as wrong:
            authentication_service.login(EMAIL, "wrong-password")

        assert str(unknown.value) == str(wrong.value) == "Invalid credentials"


class TestCurrentAccount:
    def test_resolves_session(
        self, authentication_service: AuthenticationService, account, credentials
    ) -> None:
        token = credentials.issue_session_token(account)
        assert authentication_service.current_account(token).id == account.id

    def test_deleted_account(
        self, authentication_service: AuthenticationService, credentials, make_account
    ) -> None:
        token = credentials.issue_session_token(make_account())

        with pytest.raises(InvalidSession):
            authentication_service.current_account(token)

    def test_bad_token(self, authentication_service: AuthenticationService) -> None:
        with pytest.raises(InvalidSession):
            authentication_service.current_account("garbage")


class TestIssueResetToken:
    def test_account_window_by_default(
        self, authentication_service: AuthenticationService, account, repository, tokens
    ) -> None:
        raw = authentication_service.issue_reset_token(account)

        stored = repository.get_by_id(account.id)
        assert stored.reset_token_hash == tokens.digest(raw)
        assert stored.reset_token_expires_at == tokens.now() + timedelta(minutes=10)

    def test_request_window(
        self, authentication_service: AuthenticationService, account, repository, tokens
    ) -> None:
        authentication_service.issue_reset_token(account, ResetWindow.REQUEST)

        stored = repository.get_by_id(account.id)
        assert stored.reset_token_expires_at == tokens.now() + timedelta(hours=1)

    def test_reissue_replaces_previous_token(
        self, authentication_service: AuthenticationService, account
    ) -> None:
        first = authentication_service.issue_reset_token(account)
        authentication_service.issue_reset_token(account)

        with pytest.raises(TokenInvalidOrExpired):
            authentication_service.reset_password(first, "new-password-1")


class TestForgotPassword:
    def test_sends_reset_link(
        self,
        authentication_service: AuthenticationService,
        account,
        repository,
        email_sender: Mock,
        tokens,
    ) -> None:
        authentication_service.request_password_reset(EMAIL)

        recipient, subject, body = email_sender.send.call_args[0]
        assert recipient == EMAIL
        assert subject == RESET_SUBJECT
        assert "https://jobsecure.test/reset-password/" in body

        stored = repository.get_by_id(account.id)
        assert stored.reset_token_hash == tokens.digest(reset_token_from(email_sender))
        assert stored.reset_token_expires_at == tokens.now() + timedelta(hours=1)

    def test_unknown_email_is_silent(
        self, authentication_service: AuthenticationService, email_sender: Mock
    ) -> None:
        assert authentication_service.request_password_reset("nobody123@gmail.com") is None
        email_sender.send.assert_not_called()

    def test_delivery_failure_clears_reset_fields(
        self,
        authentication_service: AuthenticationService,
        account,
        repository,
        email_sender: Mock,
    ) -> None:
        email_sender.send.side_effect = NotificationError("smtp down")

        with pytest.raises(NotificationError):
            authentication_service.request_password_reset(EMAIL)

        stored = repository.get_by_id(account.id)
        assert stored.reset_token_hash is None
        assert stored.reset_token_expires_at is None


class TestResetPassword:
    def test_round_trip(
        self,
        authentication_service: AuthenticationService,
        account,
        repository,
        email_sender: Mock,
    ) -> None:
        authentication_service.request_password_reset(EMAIL)
        raw = reset_token_from(email_sender)

        authentication_service.reset_password(raw, "brand-new-password")

        stored = repository.get_by_id(account.id)
        assert stored.reset_token_hash is None
        assert stored.reset_token_expires_at is None
        assert authentication_service.login(EMAIL, "brand-new-password").account.id == account.id
        with pytest.raises(InvalidCredentials):
            authentication_service.login(EMAIL, PASSWORD)

    def test_token_is_single_use(
        self, authentication_service: AuthenticationService, account, email_sender: Mock
    ) -> None:
        authentication_service.request_password_reset(EMAIL)
        raw = reset_token_from(email_sender)
        authentication_service.reset_password(raw, "brand-new-password")

        with pytest.raises(TokenInvalidOrExpired):
            authentication_service.reset_password(raw, "another-password")

    def test_unknown_token(self, authentication_service: AuthenticationService) -> None:
        with pytest.raises(TokenInvalidOrExpired):
            authentication_service.reset_password("f" * 40, "brand-new-password")

    def test_expired_token_leaves_password(
        self,
        authentication_service: AuthenticationService,
        account,
        repository,
        email_sender: Mock,
        clock,
    ) -> None:
        authentication_service.request_password_reset(EMAIL)
        raw = reset_token_from(email_sender)

        clock.advance(timedelta(hours=1))

        with pytest.raises(TokenInvalidOrExpired):
            authentication_service.reset_password(raw, "brand-new-password")
        assert repository.get_by_id(account.id).password_hash == account.password_hash

    def test_account_window_expires_after_ten_minutes(
        self, authentication_service: AuthenticationService, account, clock
    ) -> None:
        raw = authentication_service.issue_reset_token(account)

        clock.advance(timedelta(minutes=10))

        with pytest.raises(TokenInvalidOrExpired):
            authentication_service.reset_password(raw, "brand-new-password")


class TestUpdatePassword:
    def test_changes_password(
        self, authentication_service: AuthenticationService, account, credentials
    ) -> None:
        session = authentication_service.update_password(account.id, PASSWORD, "brand-new-password")

        assert credentials.decode_session_token(session.session_token).account_id == account.id
        assert authentication_service.login(EMAIL, "brand-new-password").account.id == account.id

    def test_outstanding_reset_token_revoked(
        self, authentication_service: AuthenticationService, account, repository
    ) -> None:
        raw = authentication_service.issue_reset_token(account)

        authentication_service.update_password(account.id, PASSWORD, "brand-new-password")

        assert repository.get_by_id(account.id).reset_token_hash is None
        with pytest.raises(TokenInvalidOrExpired):
            authentication_service.reset_password(raw, "attacker-password")

    def test_wrong_current_password(
        self, authentication_service: AuthenticationService, account, repository
    ) -> None:
        with pytest.raises(InvalidCredentials):
            authentication_service.update_password(account.id, "wrong-password", "brand-new")

        assert repository.get_by_id(account.id).password_hash == account.password_hash

    def test_missing_account(self, authentication_service: AuthenticationService) -> None:
        with pytest.raises(InvalidCredentials):
            authentication_service.update_password(uuid4(), PASSWORD, "brand-new-password")

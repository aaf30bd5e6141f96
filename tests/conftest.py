"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory AccountRepository with the same atomicity guarantees
  as the Postgres adapter
- A controllable clock for token expiry boundaries
- Fast argon2 parameters for unit tests

The process runs in the "test" environment unless one is given, so the
application settings load without a production JWT secret.
"""

import os
import threading
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock
from uuid import UUID

import pytest

from src.domain.authentication import AuthenticationService
from src.domain.credentials import CredentialManager
from src.domain.deliverability import DeliverabilityOracle
from src.domain.email_domain import DomainVerifier
from src.domain.ports import Account, AccountKind, DeliverabilityVerdict
from src.domain.registration import RegistrationService
from src.domain.tokens import TokenIssuer

os.environ.setdefault("ENVIRONMENT", "test")

TEST_JWT_SECRET = "unit-test-jwt-secret-with-32-plus-bytes"
GOOD_VERDICT = DeliverabilityVerdict(
    format_valid=True, deliverable=True, free_mail=True, disposable=False, role_email=False
)


class FakeClock:
    """Mutable clock; call it to read, advance() to move forward."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta

    def set(self, moment: datetime) -> None:
        self.current = moment


class InMemoryAccountRepository:
    """
    AccountRepository backed by a dict.

    A single lock serializes every operation, which gives the same
    observable guarantees as the unique constraint and conditional
    updates of the Postgres adapter.
    """

    def __init__(self) -> None:
        self._accounts: dict[UUID, Account] = {}
        self._lock = threading.Lock()

    @property
    def accounts(self) -> list[Account]:
        with self._lock:
            return list(self._accounts.values())

    def _update(self, account_id: UUID, **changes) -> Account | None:
        account = self._accounts.get(account_id)
        if account is None:
            return None
        updated = replace(account, **changes)
        self._accounts[account_id] = updated
        return updated

    def _find(self, predicate: Callable[[Account], bool]) -> Account | None:
        return next((a for a in self._accounts.values() if predicate(a)), None)

    def create_account(self, name, email, password_hash, kind) -> Account | None:
        with self._lock:
            if self._find(lambda a: a.email == email) is not None:
                return None
            account = Account(
                id=uuid.uuid4(),
                name=name,
                email=email,
                password_hash=password_hash,
                kind=kind,
                is_verified=False,
                created_at=datetime.now(timezone.utc),
            )
            self._accounts[account.id] = account
            return account

    def get_by_id(self, account_id):
        with self._lock:
            return self._accounts.get(account_id)

    def get_by_email(self, email):
        with self._lock:
            return self._find(lambda a: a.email == email)

    def set_verification_token(self, account_id, token_hash, expires_at) -> None:
        with self._lock:
            self._update(
                account_id,
                verification_token_hash=token_hash,
                verification_token_expires_at=expires_at,
            )

    def clear_verification_token(self, account_id) -> None:
        with self._lock:
            self._update(
                account_id, verification_token_hash=None, verification_token_expires_at=None
            )

    def _verify(self, account_id) -> Account | None:
        return self._update(
            account_id,
            is_verified=True,
            verification_token_hash=None,
            verification_token_expires_at=None,
            verification_code=None,
            verification_code_expires_at=None,
        )

    def consume_verification_token(self, token_hash, now):
        with self._lock:
            match = self._find(
                lambda a: a.verification_token_hash == token_hash
                and a.verification_token_expires_at is not None
                and a.verification_token_expires_at > now
            )
            return None if match is None else self._verify(match.id)

    def set_verification_code(self, account_id, code, expires_at) -> None:
        with self._lock:
            self._update(
                account_id, verification_code=code, verification_code_expires_at=expires_at
            )

    def consume_verification_code(self, email, code, now):
        with self._lock:
            match = self._find(
                lambda a: a.email == email
                and a.verification_code == code
                and a.verification_code_expires_at is not None
                and a.verification_code_expires_at > now
            )
            return None if match is None else self._verify(match.id)

    def mark_verified(self, account_id):
        with self._lock:
            account = self._verify(account_id)
            if account is None:
                raise LookupError(f"Account {account_id} does not exist")
            return account

    def set_reset_token(self, account_id, token_hash, expires_at) -> None:
        with self._lock:
            self._update(account_id, reset_token_hash=token_hash, reset_token_expires_at=expires_at)

    def clear_reset_token(self, account_id) -> None:
        with self._lock:
            self._update(account_id, reset_token_hash=None, reset_token_expires_at=None)

    def consume_reset_token(self, token_hash, new_password_hash, now):
        with self._lock:
            match = self._find(
                lambda a: a.reset_token_hash == token_hash
                and a.reset_token_expires_at is not None
                and a.reset_token_expires_at > now
            )
            if match is None:
                return None
            return self._update(
                match.id,
                password_hash=new_password_hash,
                reset_token_hash=None,
                reset_token_expires_at=None,
            )

    def update_password_hash(self, account_id, password_hash) -> None:
        with self._lock:
            self._update(
                account_id,
                password_hash=password_hash,
                reset_token_hash=None,
                reset_token_expires_at=None,
            )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def credentials() -> CredentialManager:
    """CredentialManager with minimal argon2 cost so unit tests stay fast."""
    return CredentialManager(
        secret=TEST_JWT_SECRET,
        session_ttl=timedelta(hours=1),
        memory_cost=8,
        time_cost=1,
        parallelism=1,
    )


@pytest.fixture
def tokens(clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(hash_key="unit-test-token-key", clock=clock)


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def email_sender() -> Mock:
    return Mock()


@pytest.fixture
def mx_resolver() -> Mock:
    resolver = Mock()
    resolver.resolve_mx.return_value = ["mx.example.net"]
    return resolver


@pytest.fixture
def deliverability_client() -> Mock:
    client = Mock()
    client.check.return_value = GOOD_VERDICT
    return client


@pytest.fixture
def make_account() -> Callable[..., Account]:
    """Factory for Account values with sensible defaults."""

    def factory(**overrides) -> Account:
        fields = {
            "id": uuid.uuid4(),
            "name": "Valid User",
            "email": "validuser1@protonmail.com",
            "password_hash": "$argon2id$v=19$m=8,t=1,p=1$c2FsdHNhbHQ$aGFzaA",
            "kind": AccountKind.FREELANCER,
            "is_verified": False,
            "created_at": datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return Account(**fields)

    return factory


@pytest.fixture
def registration_service(
    repository: InMemoryAccountRepository,
    email_sender: Mock,
    credentials: CredentialManager,
    tokens: TokenIssuer,
    mx_resolver: Mock,
    deliverability_client: Mock,
) -> RegistrationService:
    return RegistrationService(
        repository=repository,
        email_sender=email_sender,
        credentials=credentials,
        tokens=tokens,
        domain_verifier=DomainVerifier(resolver=mx_resolver),
        deliverability=DeliverabilityOracle(client=deliverability_client),
        public_base_url="https://jobsecure.test",
    )


@pytest.fixture
def authentication_service(
    repository: InMemoryAccountRepository,
    email_sender: Mock,
    credentials: CredentialManager,
    tokens: TokenIssuer,
) -> AuthenticationService:
    return AuthenticationService(
        repository=repository,
        email_sender=email_sender,
        credentials=credentials,
        tokens=tokens,
        public_base_url="https://jobsecure.test",
    )

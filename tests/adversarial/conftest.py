"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition and timing tests
against a running PostgreSQL. When none answers, the tests are skipped.
"""

from collections.abc import Callable, Generator
from datetime import timedelta

import psycopg
import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import PostgresAccountRepository, run_migrations
from src.config.settings import get_settings
from src.domain.authentication import AuthenticationService
from src.domain.credentials import CredentialManager
from src.domain.ports import Account, AccountKind
from src.domain.tokens import TokenIssuer


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for adversarial tests."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=20, open=True)
    try:
        pool.wait(timeout=5.0)
    except (PoolTimeout, psycopg.OperationalError):
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def repository(pool: ConnectionPool) -> PostgresAccountRepository:
    """Create repository instance for each test."""
    return PostgresAccountRepository(pool)


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean accounts table before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM accounts")
        conn.commit()
    yield


@pytest.fixture(scope="module")
def production_credentials() -> CredentialManager:
    """CredentialManager with the production argon2id parameters."""
    return CredentialManager(
        secret="adversarial-test-secret-32-bytes!!", session_ttl=timedelta(hours=1)
    )


@pytest.fixture
def postgres_tokens() -> TokenIssuer:
    return TokenIssuer(hash_key="adversarial-token-key")


@pytest.fixture
def postgres_auth_service(
    repository: PostgresAccountRepository,
    email_sender,
    production_credentials: CredentialManager,
    postgres_tokens: TokenIssuer,
) -> AuthenticationService:
    return AuthenticationService(
        repository=repository,
        email_sender=email_sender,
        credentials=production_credentials,
        tokens=postgres_tokens,
    )


@pytest.fixture
def stored_account(
    repository: PostgresAccountRepository, production_credentials: CredentialManager
) -> Callable[[str, str], Account]:
    """Factory inserting an unverified account with a real password hash."""

    def factory(email: str, password: str) -> Account:
        password_hash = production_credentials.hash_password(password)
        account = repository.create_account(
            "Valid User", email, password_hash, AccountKind.FREELANCER
        )
        assert account is not None
        return account

    return factory

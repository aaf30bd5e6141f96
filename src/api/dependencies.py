"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from collections.abc import Callable
from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.deliverability.abstract_api import AbstractApiClient
from src.adapters.dns.resolver import DnsMxResolver
from src.adapters.repository.postgres import PostgresAccountRepository
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.smtp import SmtpEmailSender
from src.config.settings import get_settings
from src.domain.authentication import AuthenticationService
from src.domain.credentials import CredentialManager
from src.domain.deliverability import DeliverabilityOracle
from src.domain.email_domain import DomainVerifier
from src.domain.exceptions import InvalidSession
from src.domain.ports import Account, AccountKind, EmailSender
from src.domain.registration import RegistrationService
from src.domain.tokens import TokenIssuer

SESSION_COOKIE = "token"
NOT_AUTHORIZED = "Not authorized to access this route"


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_repository(request: Request) -> PostgresAccountRepository:
    """Create repository with connection pool from app state."""
    return PostgresAccountRepository(get_pool(request))


# Stateless adapters and domain helpers are process-wide singletons


@lru_cache
def get_email_sender() -> EmailSender:
    """SMTP sender when a relay is configured, console sender otherwise."""
    settings = get_settings()
    if not settings.smtp_host:
        return ConsoleEmailSender()
    return SmtpEmailSender(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        from_address=settings.smtp_from_address,
        timeout=settings.smtp_timeout_seconds,
    )


@lru_cache
def get_mx_resolver() -> DnsMxResolver:
    return DnsMxResolver(timeout=get_settings().dns_timeout_seconds)


@lru_cache
def get_deliverability_client() -> AbstractApiClient:
    settings = get_settings()
    return AbstractApiClient(
        api_key=settings.email_validation_api_key,
        base_url=settings.email_validation_api_url,
        timeout=settings.email_validation_timeout_seconds,
    )


@lru_cache
def get_credential_manager() -> CredentialManager:
    settings = get_settings()
    return CredentialManager(
        secret=settings.jwt_secret,
        session_ttl=timedelta(minutes=settings.jwt_expire_minutes),
        algorithm=settings.jwt_algorithm,
        memory_cost=settings.argon2_memory_cost,
        time_cost=settings.argon2_time_cost,
        parallelism=settings.argon2_parallelism,
    )


@lru_cache
def get_token_issuer() -> TokenIssuer:
    settings = get_settings()
    return TokenIssuer(
        hash_key=settings.token_hash_key,
        verification_ttl=timedelta(seconds=settings.verification_token_ttl_seconds),
        verification_code_ttl=timedelta(seconds=settings.verification_code_ttl_seconds),
        reset_request_ttl=timedelta(seconds=settings.reset_token_request_ttl_seconds),
        reset_account_ttl=timedelta(seconds=settings.reset_token_account_ttl_seconds),
    )


def get_registration_service(request: Request) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    The development-mode flag is read here once and passed in, so the
    domain never consults the environment itself.
    """
    settings = get_settings()
    return RegistrationService(
        repository=get_repository(request),
        email_sender=get_email_sender(),
        credentials=get_credential_manager(),
        tokens=get_token_issuer(),
        domain_verifier=DomainVerifier(resolver=get_mx_resolver()),
        deliverability=DeliverabilityOracle(
            client=get_deliverability_client(),
            bypass_enabled=settings.is_development,
            bypass_domains=tuple(settings.dev_bypass_domains),
        ),
        auto_verify=settings.is_development,
        public_base_url=settings.public_base_url,
    )


def get_authentication_service(request: Request) -> AuthenticationService:
    """Create authentication service with injected dependencies."""
    return AuthenticationService(
        repository=get_repository(request),
        email_sender=get_email_sender(),
        credentials=get_credential_manager(),
        tokens=get_token_issuer(),
        public_base_url=get_settings().public_base_url,
    )


# Bearer header is optional because the session may also arrive as a cookie
http_bearer = HTTPBearer(auto_error=False)


def get_session_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str:
    """
    Extract the session token from the Authorization header or the cookie.

    The header wins when both are present.
    """
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    token = request.cookies.get(SESSION_COOKIE)
    if not token or token == "none":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHORIZED)
    return token


def get_current_account(
    token: str = Depends(get_session_token),
    service: AuthenticationService = Depends(get_authentication_service),
) -> Account:
    """Resolve the session token to an account or fail with 401."""
    try:
        return service.current_account(token)
    except InvalidSession:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHORIZED
        ) from None


def require_account_kind(*kinds: AccountKind) -> Callable[..., Account]:
    """Dependency factory restricting a route to the given account kinds."""

    def dependency(account: Account = Depends(get_current_account)) -> Account:
        if account.kind not in kinds:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User type {account.kind.value} is not authorized to access this route",
            )
        return account

    return dependency


def require_verified(account: Account = Depends(get_current_account)) -> Account:
    """Dependency restricting a route to verified accounts."""
    if not account.is_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please verify your email address before accessing this resource",
        )
    return account

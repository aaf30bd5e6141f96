"""
Credential manager - argon2id password hashing and signed session tokens.

Passwords are hashed with argon2id (memory-hard, ~64 MiB, 3 passes,
4 lanes by default) and checked only through argon2's own verify
primitive. Session tokens are stateless HS256 JWTs carrying the account
id and account kind; they are validated by signature and expiry alone.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import cached_property
from uuid import UUID

import jwt
from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError

from .exceptions import InvalidSession
from .ports import Account, AccountKind


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried by a verified session token."""

    account_id: UUID
    kind: AccountKind
    expires_at: datetime


class CredentialManager:
    """Owns password hashing/verification and session token issuance."""

    def __init__(
        self,
        secret: str,
        session_ttl: timedelta,
        algorithm: str = "HS256",
        memory_cost: int = 65536,
        time_cost: int = 3,
        parallelism: int = 4,
    ) -> None:
        self._secret = secret
        self._session_ttl = session_ttl
        self._algorithm = algorithm
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )

    def hash_password(self, password: str) -> str:
        """
        Hash a plaintext password with argon2id.

        Hashing errors propagate; callers must not persist anything when
        this raises.
        """
        return self._hasher.hash(password)

    def verify_password(self, password_hash: str, password: str) -> bool:
        """Check a password against a stored argon2 hash."""
        try:
            return self._hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def burn_verification(self, password: str) -> None:
        """
        Run a verify against a fixed dummy hash.

        Used when no account exists so "unknown email" costs the same as
        "wrong password".
        """
        self.verify_password(self._dummy_hash, password)

    @cached_property
    def _dummy_hash(self) -> str:
        return self._hasher.hash("dummy_password_for_timing_safety")

    def issue_session_token(self, account: Account) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(account.id),
            "kind": account.kind.value,
            "iat": now,
            "exp": now + self._session_ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode_session_token(self, token: str) -> SessionClaims:
        """
        Verify signature and expiry of a session token.

        Raises:
            InvalidSession: If the token cannot be trusted
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
            return SessionClaims(
                account_id=UUID(payload["sub"]),
                kind=AccountKind(payload["kind"]),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (jwt.PyJWTError, KeyError, ValueError) as e:
            raise InvalidSession("Not authorized to access this route") from e

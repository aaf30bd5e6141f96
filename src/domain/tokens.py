"""
Token issuer - single-use verification and reset material.

Two verification variants coexist:

- Link token: 20 random bytes (hex), 24h window. Only a keyed
  HMAC-SHA256 digest and the expiry are persisted.
- Resend code: 6 decimal digits from the non-cryptographic ``random``
  module, 1h window, stored and compared in plaintext.

Reset tokens use the link-token shape with one of two windows (see
ResetWindow). Consumption happens in the repository as a single
conditional update, so this module only produces and digests material.
"""

import hashlib
import hmac
import random
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

TOKEN_BYTES = 20


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResetWindow(str, Enum):
    """
    Reset token validity windows.

    REQUEST is used by the forgot-password flow (1h by default). ACCOUNT
    is the account-level issuing helper (10 minutes by default). The two
    durations disagree and are kept separate on purpose until product
    decides which is canonical.
    """

    REQUEST = "request"
    ACCOUNT = "account"


@dataclass(frozen=True)
class IssuedToken:
    """Raw token for the recipient plus what gets persisted."""

    raw: str
    digest: str
    expires_at: datetime


@dataclass(frozen=True)
class IssuedCode:
    code: str
    expires_at: datetime


class TokenIssuer:
    """Generates, digests and time-bounds single-use tokens."""

    def __init__(
        self,
        hash_key: str,
        verification_ttl: timedelta = timedelta(hours=24),
        verification_code_ttl: timedelta = timedelta(hours=1),
        reset_request_ttl: timedelta = timedelta(hours=1),
        reset_account_ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._hash_key = hash_key.encode()
        self._verification_ttl = verification_ttl
        self._verification_code_ttl = verification_code_ttl
        self._reset_ttls = {
            ResetWindow.REQUEST: reset_request_ttl,
            ResetWindow.ACCOUNT: reset_account_ttl,
        }
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def digest(self, raw: str) -> str:
        """Keyed digest of a raw token, used both when storing and when looking up."""
        return hmac.new(self._hash_key, raw.encode(), hashlib.sha256).hexdigest()

    def issue_verification_token(self) -> IssuedToken:
        return self._issue(self._verification_ttl)

    def issue_reset_token(self, window: ResetWindow = ResetWindow.REQUEST) -> IssuedToken:
        return self._issue(self._reset_ttls[window])

    def issue_verification_code(self) -> IssuedCode:
        # Weaker than the link token: non-cryptographic source, plaintext storage
        code = str(random.randint(100000, 999999))
        return IssuedCode(code=code, expires_at=self.now() + self._verification_code_ttl)

    def _issue(self, ttl: timedelta) -> IssuedToken:
        raw = secrets.token_hex(TOKEN_BYTES)
        return IssuedToken(raw=raw, digest=self.digest(raw), expires_at=self.now() + ttl)

"""
Abstract API email validation adapter - Implements DeliverabilityClient protocol.

Calls https://emailvalidation.abstractapi.com/v1/ once per check with a
bounded timeout and no retry. The response is parsed into a model where
every field is optional; anything that does not parse is reported as
DeliverabilityUnavailable so the domain can apply its fail-open policy.
"""

import logging

import httpx
from pydantic import BaseModel, ConfigDict

from src.domain.exceptions import DeliverabilityNotConfigured, DeliverabilityUnavailable
from src.domain.ports import DeliverabilityVerdict

logger = logging.getLogger(__name__)


class _Flag(BaseModel):
    """Abstract API wraps booleans as {"value": true, "text": "TRUE"}."""

    model_config = ConfigDict(extra="ignore")

    value: bool | None = None


class AbstractApiResponse(BaseModel):
    """Subset of the Abstract API response used for the decision."""

    model_config = ConfigDict(extra="ignore")

    deliverability: str | None = None
    is_valid_format: _Flag | None = None
    is_free_email: _Flag | None = None
    is_disposable_email: _Flag | None = None
    is_role_email: _Flag | None = None

    def to_verdict(self) -> DeliverabilityVerdict:
        def flag(field: _Flag | None) -> bool | None:
            return None if field is None else field.value

        deliverable = None
        if self.deliverability is not None:
            deliverable = self.deliverability.upper() == "DELIVERABLE"

        return DeliverabilityVerdict(
            format_valid=flag(self.is_valid_format),
            deliverable=deliverable,
            free_mail=flag(self.is_free_email),
            disposable=flag(self.is_disposable_email),
            role_email=flag(self.is_role_email),
        )


class AbstractApiClient:
    """
    Implements DeliverabilityClient protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://emailvalidation.abstractapi.com/v1/",
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    def check(self, email: str) -> DeliverabilityVerdict:
        """
        Ask Abstract API about an email address.

        Raises:
            DeliverabilityNotConfigured: No API key configured
            DeliverabilityUnavailable: Network error, non-2xx status, malformed URL or
                unparseable body
        """
        if not self._api_key:
            raise DeliverabilityNotConfigured("EMAIL_VALIDATION_API_KEY not set")

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as http:
                response = http.get(self._base_url, params={"api_key": self._api_key, "email": email})
                response.raise_for_status()
                payload = AbstractApiResponse.model_validate(response.json())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Email validation API error: %s", type(e).__name__)
            # The request URL carries the API key, so the message is not propagated
            raise DeliverabilityUnavailable(type(e).__name__) from e
        except ValueError as e:
            # Body was not JSON or did not match the expected shape
            logger.error("Email validation API returned an unusable body")
            raise DeliverabilityUnavailable("Unusable response body") from e

        return payload.to_verdict()

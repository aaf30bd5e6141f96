"""
DNS resolver adapter - Implements MxResolver protocol.

Wraps dnspython's stub resolver with a bounded lifetime so a lookup can
never hang a registration request.
"""

import logging

import dns.exception
import dns.resolver

from src.domain.exceptions import MxLookupFailed

logger = logging.getLogger(__name__)


class DnsMxResolver:
    """
    Implements MxResolver protocol via dnspython.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, timeout: float = 5.0, resolver: dns.resolver.Resolver | None = None) -> None:
        """
        Args:
            timeout: Total time budget for one lookup, across retries and nameservers
            resolver: Preconfigured resolver (defaults to the system configuration)
        """
        self._timeout = timeout
        self._resolver = resolver

    @property
    def resolver(self) -> dns.resolver.Resolver:
        if self._resolver is None:
            self._resolver = dns.resolver.Resolver()
        return self._resolver

    def resolve_mx(self, domain: str) -> list[str]:
        """
        Return MX exchange hostnames ordered by preference.

        Raises:
            MxLookupFailed: On timeout, NXDOMAIN, empty answer or any other
                resolver error
        """
        try:
            answer = self.resolver.resolve(domain, "MX", lifetime=self._timeout)
        except dns.exception.DNSException as e:
            raise MxLookupFailed(f"{type(e).__name__}: {e}") from e

        records = sorted(answer, key=lambda rdata: rdata.preference)
        hosts = [rdata.exchange.to_text(omit_final_dot=True) for rdata in records]
        logger.debug("MX records for %s: %s", domain, hosts)
        return hosts

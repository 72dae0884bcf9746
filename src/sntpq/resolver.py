"""Reverse name resolution for hop headers and time sources.

Brief:
  Wraps dnspython PTR lookups behind a small adapter whose only contract is
  "maybe give me a friendly name". Any failure (NXDOMAIN, timeout, malformed
  address, missing resolver configuration) results in None; it only ever
  suppresses a display enhancement and is never reported as an error.

Inputs:
  - Literal IPv4/IPv6 address strings.

Outputs:
  - Optional hostnames without the trailing root-label dot.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import List, Optional, Sequence

import dns.exception
import dns.resolver
import dns.reversename
from cachetools import TTLCache

logger = logging.getLogger(__name__)


def is_ip_literal(host: str) -> bool:
    """Return True when host parses as a literal IPv4 or IPv6 address."""

    try:
        ipaddress.ip_address(str(host).strip())
    except ValueError:
        return False
    return True


class HostnameResolver:
    """Reverse DNS adapter backed by dnspython.

    Inputs:
      - nameservers: Optional list of nameserver addresses. When empty the
        system resolver configuration (resolv.conf) is used.
      - timeout: Lifetime in seconds for a single PTR lookup.
      - enabled: When False every lookup yields None (numeric output).
      - cache_ttl: Seconds to remember lookup results within one run; chains
        that revisit an address do not repeat the query.

    Outputs:
      - HostnameResolver instance.
    """

    def __init__(
        self,
        nameservers: Optional[Sequence[str]] = None,
        timeout: float = 2.0,
        enabled: bool = True,
        cache_ttl: float = 300.0,
    ) -> None:
        self.nameservers = list(nameservers or [])
        self.timeout = float(timeout)
        self.enabled = bool(enabled)
        self._resolver: Optional[dns.resolver.Resolver] = None
        self._cache: TTLCache = TTLCache(maxsize=256, ttl=cache_ttl)

    def _get_resolver(self) -> dns.resolver.Resolver:
        if self._resolver is not None:
            return self._resolver

        if self.nameservers:
            r = dns.resolver.Resolver(configure=False)
            r.nameservers = list(self.nameservers)
        else:
            # Hosts without a usable resolv.conf make dnspython raise during
            # configuration; fall back to an unconfigured resolver which will
            # then fail each lookup quietly.
            try:
                r = dns.resolver.Resolver(configure=True)
            except dns.exception.DNSException as exc:
                logger.debug("system resolver configuration unusable: %s", exc)
                r = dns.resolver.Resolver(configure=False)

        r.lifetime = self.timeout
        r.timeout = self.timeout
        self._resolver = r
        return r

    def reverse_lookup(self, address: str) -> List[str]:
        """Brief: Return every PTR target for address, as presented by DNS.

        Inputs:
          - address: Literal IPv4 or IPv6 address.

        Outputs:
          - List of names, each still carrying the trailing root dot.

        Raises:
          - dns.exception.DNSException on lookup failure.
          - ValueError (dns.exception.SyntaxError) for malformed addresses.
        """

        rev = dns.reversename.from_address(address)
        answer = self._get_resolver().resolve(rev, "PTR")
        return [rdata.target.to_text() for rdata in answer]

    def reverse_resolve(self, address: str) -> Optional[str]:
        """Brief: Best-effort friendly name for an address.

        Inputs:
          - address: Literal IP address string.

        Outputs:
          - First PTR name with the trailing '.' stripped, or None on any
            failure or empty answer.
        """

        if not self.enabled:
            return None
        if address in self._cache:
            return self._cache[address]

        name: Optional[str] = None
        try:
            names = self.reverse_lookup(address)
        except (dns.exception.DNSException, ValueError) as exc:
            logger.debug("reverse lookup of %s failed: %s", address, exc)
        else:
            if names:
                first = names[0]
                # Only the root label dot is dropped.
                name = (first[:-1] if first.endswith(".") else first) or None

        self._cache[address] = name
        return name

    def maybe_hostname(self, host: str) -> Optional[str]:
        """Brief: Friendly name for a target, only if it is a literal address.

        Inputs:
          - host: Target exactly as supplied by the caller.

        Outputs:
          - Reverse-resolved name, or None when host is already a name or the
            lookup fails.
        """

        if not is_ip_literal(host):
            return None
        return self.reverse_resolve(host.strip())


class NullResolver:
    """Resolver stand-in that never produces a name."""

    def reverse_resolve(self, address: str) -> Optional[str]:
        return None

    def maybe_hostname(self, host: str) -> Optional[str]:
        return None

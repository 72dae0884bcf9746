"""Follow the chain of time sources from one server to its upstream.

Brief:
  A stratum N server (N > 1) conventionally reports the IPv4 address of the
  server it synchronizes to in its Reference ID. Walking that chain is an
  explicit loop: query, decode, report, then decide whether the decoded
  address is worth querying next.

  You might think the walk could insist on an always-decreasing stratum, but
  in practice this is not the case. A server's upstream may legitimately move
  to a higher stratum after the server last talked to it, leaving the two at
  the same stratum (or the upstream above) until they next exchange packets.
  The only loop guard is therefore the recursion budget. A walk is
  guaranteed to terminate, but may show the same host more than once.

Inputs:
  - Target names, a follow flag, a budget, and the client/resolver
    collaborators.

Outputs:
  - Lazily produced ChainLink records, one per hop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Protocol

from .client import QueryError, QueryResult
from .refid import ReferenceIdentifier, decode

logger = logging.getLogger(__name__)

DEFAULT_MAX_HOPS = 15


class QueryClient(Protocol):
    """Protocol client and validator used by the walker.

    Inputs:
      - query(host): Returns a QueryResult or raises QueryError.
      - validate(result): Returns an error string or None.

    Outputs:
      - Structural type only; NtpClient satisfies it.
    """

    def query(self, host: str) -> QueryResult:
        """Query one host once."""

    def validate(self, result: QueryResult) -> Optional[str]:
        """Return a validation problem, or None."""


class NameResolver(Protocol):
    """Best-effort reverse resolver used for display names."""

    def reverse_resolve(self, address: str) -> Optional[str]:
        """Return a name for address, or None."""

    def maybe_hostname(self, host: str) -> Optional[str]:
        """Return a name for host when it is a literal address, or None."""


@dataclass(frozen=True)
class ChainLink:
    """Single hop of a walk.

    Inputs:
      - target: Host queried at this hop, as supplied or as decoded.
      - depth: 0 for the caller-supplied target, +1 per followed hop.
      - result: QueryResult, or None when the query failed.
      - reference: Decoded Reference ID, or None when the query failed.
      - target_hostname: Friendly name of target when it is a literal address.
      - source_hostname: Friendly name of the decoded upstream address.
      - validation_error: Problem reported by the validator, if any.
      - error: Query failure notice; set only on failed hops.

    Outputs:
      - Immutable record for the report emitter and tests.
    """

    target: str
    depth: int = 0
    result: Optional[QueryResult] = None
    reference: Optional[ReferenceIdentifier] = None
    target_hostname: Optional[str] = None
    source_hostname: Optional[str] = None
    validation_error: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.result is None


def should_follow(link: ChainLink, *, follow: bool, budget: int) -> bool:
    """Brief: Decide whether the walk continues past this hop.

    Inputs:
      - link: The hop just produced.
      - follow: Whether chain following was requested at all.
      - budget: Remaining number of further hops allowed.

    Outputs:
      - bool: True only when following, the hop succeeded without a
        validation problem, budget remains, the stratum is above 1 and the
        Reference ID is outside the reserved range.
    """

    if not follow or budget <= 0:
        return False
    if link.result is None or link.reference is None:
        return False
    if link.validation_error is not None:
        return False
    if link.result.stratum <= 1:
        return False
    return not link.reference.is_reserved_range


def walk(
    target: str,
    *,
    follow: bool,
    budget: int = DEFAULT_MAX_HOPS,
    client: QueryClient,
    resolver: NameResolver,
) -> Iterator[ChainLink]:
    """Brief: Query target and, optionally, the chain of its time sources.

    Inputs:
      - target: Caller-supplied name or address.
      - follow: Follow decoded upstream addresses when True.
      - budget: Maximum number of further hops; the walk yields at most
        budget + 1 links.
      - client: QueryClient collaborator.
      - resolver: NameResolver collaborator.

    Outputs:
      - Iterator of ChainLink; each link is yielded before the next query is
        issued, so partial chains are visible even if a later hop hangs.

    Example:
      >>> for link in walk("pool.ntp.org", follow=True, client=c, resolver=r):
      ...     emitter.emit(link)
    """

    host = target
    depth = 0
    remaining = int(budget)

    while True:
        try:
            result = client.query(host)
        except QueryError as exc:
            logger.debug(
                "query of %s failed at depth %d: %s", exc.host, depth, exc.reason
            )
            yield ChainLink(target=host, depth=depth, error=exc.reason)
            return

        ref = decode(result.reference_id, result.stratum)
        problem = client.validate(result)

        source_name = None
        if ref.may_be_address(result.stratum):
            source_name = resolver.reverse_resolve(ref.dotted_quad)

        link = ChainLink(
            target=host,
            depth=depth,
            result=result,
            reference=ref,
            target_hostname=resolver.maybe_hostname(host),
            source_hostname=source_name,
            validation_error=problem,
        )
        yield link

        if not should_follow(link, follow=follow, budget=remaining):
            return

        logger.debug(
            "following %s -> %s (stratum %d, %d hops left)",
            host,
            ref.dotted_quad,
            result.stratum,
            remaining - 1,
        )
        host = ref.dotted_quad
        remaining -= 1
        depth += 1


def walk_all(
    targets: Iterable[str],
    *,
    follow: bool,
    budget: int = DEFAULT_MAX_HOPS,
    client: QueryClient,
    resolver: NameResolver,
) -> Iterator[ChainLink]:
    """Walk each target in order, each with a fresh budget."""

    for target in targets:
        yield from walk(
            target, follow=follow, budget=budget, client=client, resolver=resolver
        )

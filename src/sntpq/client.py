"""SNTP query adapter around ntplib.

Brief:
  The chain walker never looks at packets. It asks an NtpClient to query a
  host and gets back an immutable QueryResult, or a QueryError. The client
  also carries the reply sanity checks (validate) so both collaborators can
  be swapped together in tests.

Inputs:
  - Host names or literal addresses; name-to-address resolution is left to
    ntplib (getaddrinfo).

Outputs:
  - QueryResult instances and optional validation error strings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

import ntplib

from .refid import kiss_code

logger = logging.getLogger(__name__)

# Stratum values of 16 and above mean "unsynchronized" or are reserved.
MAX_STRATUM = 16

# Roughly 36 hours; a server that has not updated its clock within the
# longest poll interval cannot be considered fresh.
MAX_POLL_INTERVAL = float(2**17)

# Upper bound on root synchronization distance, in seconds.
MAX_DISPERSION = 16.0

LEAP_NOT_IN_SYNC = 3


class QueryError(Exception):
    """Raised when no usable reply could be obtained from a server."""

    def __init__(self, host: str, reason: Union[str, BaseException]) -> None:
        self.host = host
        self.reason = str(reason)
        super().__init__(self.reason)


@dataclass(frozen=True)
class QueryResult:
    """Outcome of one SNTP query against one server.

    Inputs:
      - stratum: Server stratum (0..255).
      - reference_id: Raw 32-bit Reference ID.
      - time: Server transmit time (UTC).
      - clock_offset: Local clock offset relative to the server, seconds.
      - rtt: Round trip delay, seconds.
      - precision: Server clock precision, seconds.
      - min_error: Lower bound on the clock error from causality, seconds.
      - reference_time: When the server clock was last updated (UTC).
      - root_distance: Estimated distance to the primary source via this
        server, seconds.
      - root_delay: Server's total delay to its primary source, seconds.
      - root_dispersion: Server's dispersion to its primary source, seconds.
      - leap: Leap indicator (0 = none).
      - kiss_code: Four character kiss code at stratum 0, else None.
      - version: NTP version of the reply.
      - poll: Poll exponent of the reply.

    Outputs:
      - Immutable record.
    """

    stratum: int
    reference_id: int
    time: datetime
    clock_offset: float
    rtt: float
    precision: float
    min_error: float
    reference_time: datetime
    root_distance: float
    root_delay: float
    root_dispersion: float
    leap: int = 0
    kiss_code: Optional[str] = None
    version: int = 4
    poll: int = 0


def _utc(system_time: float) -> datetime:
    return datetime.fromtimestamp(system_time, tz=timezone.utc)


def min_error(t1: float, t2: float, t3: float, t4: float) -> float:
    """Brief: Lower bound on clock error implied by the four timestamps.

    Inputs:
      - t1: Client transmit (originate) timestamp.
      - t2: Server receive timestamp.
      - t3: Server transmit timestamp.
      - t4: Client receive (destination) timestamp.

    Outputs:
      - float: Seconds the timestamps violate causality by, or 0.0.
    """

    return max(0.0, t1 - t2, t3 - t4)


def root_distance(rtt: float, root_delay: float, root_dispersion: float) -> float:
    """Half the total delay to the primary source plus its dispersion."""

    return (rtt + root_delay) / 2.0 + root_dispersion


def result_from_stats(stats: ntplib.NTPStats) -> QueryResult:
    """Brief: Convert an ntplib.NTPStats reply into a QueryResult.

    Inputs:
      - stats: Reply object returned by ntplib.NTPClient.request.

    Outputs:
      - QueryResult with derived precision, min_error and root_distance.
    """

    stratum = int(stats.stratum)
    ref_id = int(stats.ref_id) & 0xFFFFFFFF
    rtt = float(stats.delay)
    root_delay = float(stats.root_delay)
    root_dispersion = float(stats.root_dispersion)

    return QueryResult(
        stratum=stratum,
        reference_id=ref_id,
        time=_utc(stats.tx_time),
        clock_offset=float(stats.offset),
        rtt=rtt,
        precision=2.0 ** int(stats.precision),
        min_error=min_error(
            stats.orig_timestamp,
            stats.recv_timestamp,
            stats.tx_timestamp,
            stats.dest_timestamp,
        ),
        reference_time=_utc(stats.ref_time),
        root_distance=root_distance(rtt, root_delay, root_dispersion),
        root_delay=root_delay,
        root_dispersion=root_dispersion,
        leap=int(stats.leap),
        kiss_code=kiss_code(ref_id) if stratum == 0 else None,
        version=int(stats.version),
        poll=int(stats.poll),
    )


def validate_result(result: QueryResult) -> Optional[str]:
    """Brief: Sanity-check a reply the way an SNTP client should.

    Inputs:
      - result: QueryResult to check.

    Outputs:
      - None when the reply is usable, else a short description of the first
        problem found.
    """

    if result.stratum == 0:
        return "kiss of death received"
    if result.stratum >= MAX_STRATUM:
        return "invalid stratum in response"

    freshness = (result.time - result.reference_time).total_seconds()
    if freshness > MAX_POLL_INTERVAL:
        return "server clock not fresh"

    # Peer synchronization distance (lambda).
    if result.root_delay / 2.0 + result.root_dispersion > MAX_DISPERSION:
        return "server clock ticks too infrequently"

    if result.time < result.reference_time:
        return "invalid time reported"
    if result.leap == LEAP_NOT_IN_SYNC:
        return "server clock not synchronized"
    return None


class NtpClient:
    """Issue single SNTP queries.

    Inputs:
      - timeout: Seconds to wait for a reply.
      - version: NTP version number to put in the request.
      - port: UDP port or service name.

    Outputs:
      - NtpClient instance exposing query() and validate().
    """

    def __init__(
        self, timeout: float = 5.0, version: int = 4, port: Union[int, str] = 123
    ) -> None:
        self.timeout = float(timeout)
        self.version = int(version)
        self.port = port
        self._client = ntplib.NTPClient()

    def query(self, host: str) -> QueryResult:
        """Brief: Query host once; no retries.

        Inputs:
          - host: Name or literal address.

        Outputs:
          - QueryResult.

        Raises:
          - QueryError on timeout, name resolution or socket failure.
        """

        logger.debug("querying %s (v%d, port %s)", host, self.version, self.port)
        try:
            stats = self._client.request(
                host, version=self.version, port=self.port, timeout=self.timeout
            )
        except ntplib.NTPException as exc:
            raise QueryError(host, exc) from exc
        except OSError as exc:
            raise QueryError(host, exc) from exc
        return result_from_stats(stats)

    def validate(self, result: QueryResult) -> Optional[str]:
        return validate_result(result)

"""
Brief: Global pytest configuration for sntpq tests.

Inputs:
  - None

Outputs:
  - Fixtures shared across test modules (per-test timeout, QueryResult
    factory, fake client and resolver collaborators).
"""

import os
import signal
import sys
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytest

# Ensure 'src' is on sys.path so 'sntpq' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from sntpq.client import QueryError, QueryResult  # noqa: E402

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def _alarm_handler(signum, frame):
    """
    Brief: Signal handler that raises TimeoutError when alarm triggers.

    Inputs:
      - signum: signal number (int)
      - frame: current frame (ignored)

    Outputs:
      - None: Raises TimeoutError to fail the test
    """
    raise TimeoutError("Test exceeded 10 seconds")


if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        yield


def ip_to_ref_id(address: str) -> int:
    """Encode a dotted quad as a Reference ID."""
    a, b, c, d = (int(x) for x in address.split("."))
    return (a << 24) | (b << 16) | (c << 8) | d


def build_result(
    stratum: int = 2, reference_id: int = 0xC0000201, **kw
) -> QueryResult:
    """Brief: Build a plausible QueryResult with overridable fields.

    Inputs:
      - stratum: Reply stratum.
      - reference_id: Raw Reference ID.
      - **kw: Any other QueryResult field.

    Outputs:
      - QueryResult
    """
    fields = dict(
        stratum=stratum,
        reference_id=reference_id,
        time=NOW,
        clock_offset=0.0015,
        rtt=0.0205,
        precision=2.0**-20,
        min_error=0.0,
        reference_time=NOW - timedelta(seconds=30),
        root_distance=0.012,
        root_delay=0.004,
        root_dispersion=0.0,
        leap=0,
        kiss_code=None,
    )
    fields.update(kw)
    return QueryResult(**fields)


class FakeClient:
    """Brief: In-memory QueryClient.

    Inputs:
      - replies: Mapping host -> QueryResult, or host -> exception message
        (str) to raise QueryError.
      - problems: Mapping host -> validation error string.

    Outputs:
      - Records every queried host in .queried.
    """

    def __init__(
        self,
        replies: Dict[str, object],
        problems: Optional[Dict[str, str]] = None,
    ) -> None:
        self.replies = replies
        self.problems = problems or {}
        self.queried: List[str] = []
        self._by_id: Dict[int, str] = {}

    def query(self, host: str) -> QueryResult:
        self.queried.append(host)
        reply = self.replies.get(host, "no response received")
        if isinstance(reply, str):
            raise QueryError(host, reply)
        self._by_id[id(reply)] = host
        return reply

    def validate(self, result: QueryResult) -> Optional[str]:
        return self.problems.get(self._by_id.get(id(result), ""))


class FakeResolver:
    """Brief: In-memory NameResolver.

    Inputs:
      - names: Mapping address -> hostname.

    Outputs:
      - Records reverse_resolve calls in .lookups.
    """

    def __init__(self, names: Optional[Dict[str, str]] = None) -> None:
        self.names = names or {}
        self.lookups: List[str] = []

    def reverse_resolve(self, address: str) -> Optional[str]:
        self.lookups.append(address)
        return self.names.get(address)

    def maybe_hostname(self, host: str) -> Optional[str]:
        if host.replace(".", "").isdigit():
            return self.reverse_resolve(host)
        return None


@pytest.fixture
def make_result() -> Callable[..., QueryResult]:
    return build_result


@pytest.fixture
def make_client() -> Callable[..., FakeClient]:
    return FakeClient


@pytest.fixture
def make_resolver() -> Callable[..., FakeResolver]:
    return FakeResolver


@pytest.fixture
def ref_id_of() -> Callable[[str], int]:
    return ip_to_ref_id

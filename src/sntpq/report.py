"""Human-readable rendering of walk hops.

Brief:
  ReportEmitter writes one block per successful hop to an explicit stream.
  Failed hops are not written to the stream; they go to the logging system
  so that stdout only ever contains query results.

Inputs:
  - ChainLink records produced by sntpq.walker.

Outputs:
  - Text written to the emitter's stream; error records on the
    'sntpq.report' logger.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional, TextIO

from .refid import format_source
from .walker import ChainLink

logger = logging.getLogger(__name__)

_NS_PER_US = 1_000
_NS_PER_MS = 1_000_000
_NS_PER_S = 1_000_000_000


def _fraction(value: int, unit: int) -> str:
    whole, part = divmod(value, unit)
    if not part:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{part:0{digits}d}".rstrip("0")


def format_duration(seconds: float) -> str:
    """Brief: Render seconds as a compact duration string.

    Inputs:
      - seconds: Duration in seconds; may be negative.

    Outputs:
      - str such as '0s', '850ns', '12.5µs', '3.25ms', '1.5s', '2m3.5s' or
        '1h0m0s'.

    Example:
      >>> format_duration(0.00325)
      '3.25ms'
    """

    # Truncate toward zero like an integer nanosecond count; the rounding to
    # picoseconds only absorbs float representation error.
    ns = int(round(seconds * _NS_PER_S, 3))
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)

    if ns < _NS_PER_US:
        return f"{sign}{ns}ns"
    if ns < _NS_PER_MS:
        return f"{sign}{_fraction(ns, _NS_PER_US)}µs"
    if ns < _NS_PER_S:
        return f"{sign}{_fraction(ns, _NS_PER_MS)}ms"

    hours, rem = divmod(ns, 3600 * _NS_PER_S)
    minutes, rem = divmod(rem, 60 * _NS_PER_S)
    secs = _fraction(rem, _NS_PER_S) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}"
    if minutes:
        return f"{sign}{minutes}m{secs}"
    return sign + secs


def format_time(value: datetime) -> str:
    """Render an aware datetime in UTC with microseconds."""

    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f UTC")


def render_link(link: ChainLink) -> List[str]:
    """Brief: Build the output lines for one successful hop.

    Inputs:
      - link: ChainLink with a result and decoded reference.

    Outputs:
      - List of lines without trailing newlines.
    """

    res = link.result
    ref = link.reference
    if res is None or ref is None:
        raise ValueError(f"cannot render failed hop for {link.target!r}")

    header = link.target
    if link.target_hostname:
        header = f"{link.target} {link.target_hostname}"

    lines = [f"{header}:"]
    if link.validation_error:
        lines.append(f"  validity problem: {link.validation_error}")
    if res.kiss_code:
        # RFC 5905 section 7.4
        lines.append(f"  go-away code: '{res.kiss_code}'")
    lines.extend(
        [
            f"  Stratum:         {res.stratum}",
            f"  Time Source:     {format_source(ref, link.source_hostname)} ({ref.hex})",
            f"  Time at xmit:    {format_time(res.time)}",
            f"  RTT:             {format_duration(res.rtt)}",
            f"  Precision:       {format_duration(res.precision)}",
            f"  MinError:        {format_duration(res.min_error)}",
            f"  Clock updated:   {format_time(res.reference_time)}",
            f"  Root delay:      {format_duration(res.root_delay)}",
            f"  Root dispersion: {format_duration(res.root_dispersion)}",
            # Offset and root distance are relative to us, not to the
            # server's own upstream.
            f"  local root distance: {format_duration(res.root_distance)} (via this server)",
            f"  local adjustment:    {format_duration(res.clock_offset)} (based on this server's time)",
        ]
    )
    if res.leap != 0:
        lines.append(f"  Leap second marker: {res.leap}")
    return lines


class ReportEmitter:
    """Write hop reports to a stream.

    Inputs:
      - stream: Text stream to write to (default: sys.stdout at emit time).

    Outputs:
      - ReportEmitter instance; counts of emitted and failed hops are kept
        for callers that want a summary.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream
        self.emitted = 0
        self.failures = 0

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def emit(self, link: ChainLink) -> None:
        if link.failed:
            self.failures += 1
            logger.error("error querying '%s': %s", link.target, link.error)
            return

        out = self.stream
        for line in render_link(link):
            out.write(line + "\n")
        out.flush()
        self.emitted += 1

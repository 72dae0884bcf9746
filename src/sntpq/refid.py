"""Reference Identifier decoding for SNTP/NTP replies.

Brief:
  The 32-bit Reference ID in an NTP reply means different things depending
  on the stratum of the server that sent it:

    - At stratum 1 it is (theoretically) up to four ASCII characters,
      NUL-padded at the end, naming the clock source. 0x50505300 is 'PPS'
      and is conventionally printed as '.PPS.'. RFC 5905 section 7.3 lists
      the registered values.
    - At higher strata, servers synchronized over IPv4 conventionally put the
      encoded address of their own upstream source here. Servers synchronized
      over IPv6 put a hash here, which is indistinguishable from an address.

  We always compute the nominal dotted-quad form, even when it is known to be
  meaningless (kiss codes, hashes, ASCII tags). The ASCII label is a best
  effort display aid and is never validated.

Inputs:
  - Raw reference IDs (int) and strata (int) taken from a reply.

Outputs:
  - ReferenceIdentifier views and display strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

# First octet of the IPv4 multicast block (224.0.0.0/4) and everything above.
RESERVED_FIRST_OCTET = 224

_PRINTABLE_MIN = 0x20
_PRINTABLE_MAX = 0x7E


@dataclass(frozen=True)
class ReferenceIdentifier:
    """Decoded view over a raw Reference ID.

    Inputs:
      - raw: Reference ID as an unsigned 32-bit int.
      - octets: The four bytes, most significant first.
      - dotted_quad: Nominal IPv4 rendering of the octets.
      - ascii_label: Printable prefix at stratum 1, or None.
      - is_reserved_range: True when the first octet is >= 224.

    Outputs:
      - Immutable value; recomputed per reply.
    """

    raw: int
    octets: Tuple[int, int, int, int]
    dotted_quad: str
    ascii_label: Optional[str] = None
    is_reserved_range: bool = False

    @property
    def hex(self) -> str:
        return f"{self.raw:08x}"

    def may_be_address(self, stratum: int) -> bool:
        """Brief: Whether this ID may name an upstream IPv4 server.

        Inputs:
          - stratum: Stratum of the reply this ID came from.

        Outputs:
          - bool: False at stratum 1 (clock source tag) and in the reserved
            range, True otherwise.
        """

        return stratum != 1 and not self.is_reserved_range


def ref_id_to_octets(ref_id: int) -> Tuple[int, int, int, int]:
    """Brief: Split a Reference ID into four bytes in network byte order.

    Inputs:
      - ref_id: Raw Reference ID; values are masked to 32 bits.

    Outputs:
      - Tuple of four ints in 0..255, most significant byte first.

    Example:
      >>> ref_id_to_octets(0x50505300)
      (80, 80, 83, 0)
    """

    value = int(ref_id) & 0xFFFFFFFF
    return (
        (value >> 24) & 0xFF,
        (value >> 16) & 0xFF,
        (value >> 8) & 0xFF,
        value & 0xFF,
    )


def printable_prefix(octets: Sequence[int]) -> int:
    """Return the length of the printable ASCII prefix of octets."""

    for i, b in enumerate(octets):
        if b < _PRINTABLE_MIN or b > _PRINTABLE_MAX:
            return i
    return len(octets)


def decode(ref_id: int, stratum: int) -> ReferenceIdentifier:
    """Brief: Decode a Reference ID in the context of its stratum.

    Inputs:
      - ref_id: Raw Reference ID from the reply.
      - stratum: Stratum from the same reply.

    Outputs:
      - ReferenceIdentifier with dotted_quad always set, ascii_label set only
        at stratum 1 when at least the first byte is printable, and
        is_reserved_range derived from the first octet alone.

    Example:
      >>> decode(0x50505300, 1).ascii_label
      'PPS'
      >>> decode(0xE0000001, 3).is_reserved_range
      True
    """

    octets = ref_id_to_octets(ref_id)
    label: Optional[str] = None

    # Stratum 1 IDs are not assumed to be entirely printable.
    if stratum == 1:
        k = printable_prefix(octets)
        if k > 0:
            label = bytes(octets[:k]).decode("ascii")

    return ReferenceIdentifier(
        raw=int(ref_id) & 0xFFFFFFFF,
        octets=octets,
        dotted_quad="%d.%d.%d.%d" % octets,
        ascii_label=label,
        is_reserved_range=octets[0] >= RESERVED_FIRST_OCTET,
    )


def kiss_code(ref_id: int) -> Optional[str]:
    """Brief: Extract a kiss-o'-death code from a stratum 0 Reference ID.

    Inputs:
      - ref_id: Raw Reference ID.

    Outputs:
      - Four character code such as 'RATE' or 'DENY' when every byte is
        printable; None otherwise.
    """

    octets = ref_id_to_octets(ref_id)
    if printable_prefix(octets) != len(octets):
        return None
    return bytes(octets).decode("ascii")


def format_source(ref: ReferenceIdentifier, hostname: Optional[str] = None) -> str:
    """Brief: Render a decoded Reference ID for the 'Time Source' line.

    Inputs:
      - ref: Decoded identifier.
      - hostname: Friendly name of the upstream address, if one was found.

    Outputs:
      - str: '<dotted> .<label>.' for labelled stratum 1 IDs,
        '<dotted> <hostname>' when a name is known, else '<dotted>'.
    """

    if ref.ascii_label:
        return f"{ref.dotted_quad} .{ref.ascii_label}."
    if hostname:
        return f"{ref.dotted_quad} {hostname}"
    return ref.dotted_quad

"""
Brief: Tests for sntpq.resolver reverse lookups.

Inputs:
  - None

Outputs:
  - None
"""

import dns.exception
import dns.resolver
import dns.reversename
import pytest

from sntpq.resolver import HostnameResolver, NullResolver, is_ip_literal


class _Target:
    def __init__(self, text: str) -> None:
        self._text = text

    def to_text(self) -> str:
        return self._text


class _Rdata:
    def __init__(self, text: str) -> None:
        self.target = _Target(text)


class _StubResolver:
    """Brief: Stand-in for dns.resolver.Resolver.

    Inputs:
      - answers: mapping reverse name text -> list of PTR targets or exception

    Outputs:
      - Records queried names in .calls
    """

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    def resolve(self, qname, rdtype):
        self.calls.append((qname.to_text(), rdtype))
        ans = self.answers.get(qname.to_text())
        if isinstance(ans, Exception):
            raise ans
        if ans is None:
            raise dns.resolver.NXDOMAIN()
        return [_Rdata(t) for t in ans]


def _resolver_with(answers) -> tuple:
    r = HostnameResolver(nameservers=["192.0.2.53"], timeout=0.5)
    stub = _StubResolver(answers)
    r._resolver = stub
    return r, stub


def test_is_ip_literal() -> None:
    """
    Brief: Literal IPv4/IPv6 addresses are recognized; names are not.

    Inputs:
      - None

    Outputs:
      - None
    """
    assert is_ip_literal("192.0.2.1")
    assert is_ip_literal("2001:db8::1")
    assert not is_ip_literal("time.example.net")
    assert not is_ip_literal("192.0.2")


def test_reverse_resolve_first_name_without_root_dot() -> None:
    """
    Brief: The first PTR name is returned with its trailing dot stripped.

    Inputs:
      - None

    Outputs:
      - None
    """
    r, stub = _resolver_with(
        {"1.2.0.192.in-addr.arpa.": ["ntp1.example.net.", "alias.example.net."]}
    )
    assert r.reverse_resolve("192.0.2.1") == "ntp1.example.net"
    assert stub.calls == [("1.2.0.192.in-addr.arpa.", "PTR")]


def test_reverse_resolve_failures_are_silent(caplog) -> None:
    """
    Brief: NXDOMAIN, timeouts and empty answers all yield None quietly.

    Inputs:
      - caplog: pytest log capture

    Outputs:
      - None
    """
    r, _ = _resolver_with(
        {
            "2.2.0.192.in-addr.arpa.": dns.exception.Timeout(),
            "3.2.0.192.in-addr.arpa.": [],
        }
    )
    assert r.reverse_resolve("192.0.2.1") is None
    assert r.reverse_resolve("192.0.2.2") is None
    assert r.reverse_resolve("192.0.2.3") is None
    assert r.reverse_resolve("not-an-address") is None
    assert not [rec for rec in caplog.records if rec.levelname != "DEBUG"]


def test_reverse_resolve_is_cached() -> None:
    """
    Brief: Repeated lookups of one address within a run hit DNS once.

    Inputs:
      - None

    Outputs:
      - None
    """
    r, stub = _resolver_with({"9.2.0.192.in-addr.arpa.": ["loop.example.net."]})
    assert r.reverse_resolve("192.0.2.9") == "loop.example.net"
    assert r.reverse_resolve("192.0.2.9") == "loop.example.net"
    assert len(stub.calls) == 1


def test_maybe_hostname_only_for_literals() -> None:
    """
    Brief: Names are never reverse-resolved; literals are.

    Inputs:
      - None

    Outputs:
      - None
    """
    r, stub = _resolver_with({"1.2.0.192.in-addr.arpa.": ["ntp1.example.net."]})
    assert r.maybe_hostname("time.example.net") is None
    assert stub.calls == []
    assert r.maybe_hostname("192.0.2.1") == "ntp1.example.net"


def test_disabled_resolver_never_queries() -> None:
    """
    Brief: enabled=False short-circuits every lookup.

    Inputs:
      - None

    Outputs:
      - None
    """
    r, stub = _resolver_with({"1.2.0.192.in-addr.arpa.": ["ntp1.example.net."]})
    r.enabled = False
    assert r.reverse_resolve("192.0.2.1") is None
    assert r.maybe_hostname("192.0.2.1") is None
    assert stub.calls == []
    assert NullResolver().reverse_resolve("192.0.2.1") is None
    assert NullResolver().maybe_hostname("192.0.2.1") is None


def test_explicit_nameservers_configure_resolver() -> None:
    """
    Brief: Explicit nameservers bypass resolv.conf and set the lifetime.

    Inputs:
      - None

    Outputs:
      - None
    """
    r = HostnameResolver(nameservers=["192.0.2.53"], timeout=0.75)
    res = r._get_resolver()
    assert r.nameservers == ["192.0.2.53"]
    assert len(res.nameservers) == 1
    assert res.lifetime == pytest.approx(0.75)
    assert r._get_resolver() is res


def test_reverse_lookup_uses_reversename(monkeypatch) -> None:
    """
    Brief: reverse_lookup builds the in-addr.arpa name via dnspython.

    Inputs:
      - monkeypatch: wrap dns.reversename.from_address

    Outputs:
      - None
    """
    seen = []
    real = dns.reversename.from_address

    def spy(addr):
        seen.append(addr)
        return real(addr)

    monkeypatch.setattr(dns.reversename, "from_address", spy)
    r, _ = _resolver_with({"1.2.0.192.in-addr.arpa.": ["ntp1.example.net."]})
    assert r.reverse_lookup("192.0.2.1") == ["ntp1.example.net."]
    assert seen == ["192.0.2.1"]


def test_reverse_resolve_strips_only_one_root_dot() -> None:
    """
    Brief: Exactly one trailing dot is removed, even from an odd PTR name.

    Inputs:
      - None

    Outputs:
      - None
    """
    r, _ = _resolver_with(
        {
            "4.2.0.192.in-addr.arpa.": ["odd.example.net.."],
            "5.2.0.192.in-addr.arpa.": ["relative.example"],
        }
    )
    assert r.reverse_resolve("192.0.2.4") == "odd.example.net."
    assert r.reverse_resolve("192.0.2.5") == "relative.example"

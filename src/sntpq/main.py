"""Command line entry point for sntpq.

Brief:
  Queries one or more (S)NTP servers and prints the result, which includes
  basic information about what each server itself is synchronized to. With
  --follow, the claimed upstream source is queried in turn, and so on up the
  chain.

Example use:
  sntpq pool.ntp.org
  sntpq -f time.example.net 192.0.2.123
  python -m sntpq --numeric --timeout 2 ntp1.example.net
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence, TextIO, Union

from .client import NtpClient
from .config.config_parser import ConfigError, load_config
from .config.config_schema import SntpqConfig
from .config.logging_config import init_logging
from .report import ReportEmitter
from .resolver import HostnameResolver, NullResolver
from .walker import NameResolver, QueryClient, walk_all

logger = logging.getLogger("sntpq.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sntpq",
        description=(
            "Query (S)NTP servers and report what each one is synchronized to."
        ),
    )
    parser.add_argument(
        "sources", nargs="*", metavar="SOURCE", help="Server name or address"
    )
    parser.add_argument(
        "-f",
        "--follow",
        action="store_true",
        default=None,
        help="Attempt to follow the chain of time sources for each command line source.",
    )
    parser.add_argument(
        "-m",
        "--max-hops",
        type=int,
        default=None,
        help="Maximum number of upstream hops to follow per source (default 15).",
    )
    parser.add_argument(
        "-n",
        "--numeric",
        action="store_true",
        help="Do not reverse-resolve addresses to names.",
    )
    parser.add_argument(
        "-t", "--timeout", type=float, default=None, help="Query timeout in seconds."
    )
    parser.add_argument(
        "-p", "--port", type=int, default=None, help="NTP server port (default 123)."
    )
    parser.add_argument(
        "-V",
        "--ntp-version",
        type=int,
        choices=(1, 2, 3, 4),
        default=None,
        help="NTP version to use in requests (default 4).",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to YAML config (default: $SNTPQ_CONFIG when set).",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        default=None,
        help="Logging level: debug, info, warn, error, crit.",
    )
    return parser


def _overrides(args: argparse.Namespace) -> dict:
    return {
        "follow": args.follow,
        "max_hops": args.max_hops,
        "query.timeout": args.timeout,
        "query.port": args.port,
        "query.version": args.ntp_version,
        "dns.enabled": False if args.numeric else None,
        "logging.level": args.log_level,
    }


def make_client(cfg: SntpqConfig) -> NtpClient:
    return NtpClient(
        timeout=cfg.query.timeout, version=cfg.query.version, port=cfg.query.port
    )


def make_resolver(cfg: SntpqConfig) -> Union[HostnameResolver, NullResolver]:
    if not cfg.dns.enabled:
        return NullResolver()
    return HostnameResolver(nameservers=cfg.dns.nameservers, timeout=cfg.dns.timeout)


def report_on(
    sources: Sequence[str],
    *,
    follow: bool,
    max_hops: int,
    client: QueryClient,
    resolver: NameResolver,
    emitter: ReportEmitter,
) -> int:
    """Brief: Walk and report each source in order.

    Inputs:
      - sources: Targets in command line order.
      - follow: Follow chains of time sources.
      - max_hops: Fresh recursion budget given to every source.
      - client: Protocol client collaborator.
      - resolver: Name resolver collaborator.
      - emitter: Report sink.

    Outputs:
      - int: Number of hops that failed; informational only, it does not
        change the exit status.
    """

    for link in walk_all(
        sources, follow=follow, budget=max_hops, client=client, resolver=resolver
    ):
        emitter.emit(link)

    logger.info(
        "%d hop(s) reported, %d query failure(s)", emitter.emitted, emitter.failures
    )
    return emitter.failures


def main(argv: Optional[List[str]] = None, stream: Optional[TextIO] = None) -> int:
    """
    Main entry point for the sntpq command.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).
        stream: Output stream for reports (defaults to sys.stdout).

    Returns:
        0 once every source has been processed, even when some queries
        failed; 1 when the configuration is invalid.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    out = stream if stream is not None else sys.stdout

    if not args.sources:
        out.write("No arguments.\n")
        parser.print_usage(out)
        return 0

    try:
        cfg = load_config(args.config, _overrides(args))
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    init_logging(cfg.logging)
    logger.debug(
        "sources=%s follow=%s max_hops=%d", args.sources, cfg.follow, cfg.max_hops
    )

    report_on(
        args.sources,
        follow=cfg.follow,
        max_hops=cfg.max_hops,
        client=make_client(cfg),
        resolver=make_resolver(cfg),
        emitter=ReportEmitter(out),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())  # pragma: no cover

"""Typed configuration models for sntpq.

Brief:
  The YAML configuration file is optional; every field has a default that
  matches the command line defaults. Unknown keys are rejected so that typos
  do not silently fall back to defaults.

Example YAML:

    follow: true
    max_hops: 8
    query:
      timeout: 2.5
      version: 4
      port: 123
    dns:
      enabled: true
      nameservers: ["192.0.2.53"]
      timeout: 1.0
    logging:
      level: info
      file: ~/.cache/sntpq.log
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from ..walker import DEFAULT_MAX_HOPS


class QueryConfig(BaseModel):
    """Brief: Settings for the SNTP protocol client.

    Inputs:
      - timeout: Seconds to wait for each reply.
      - version: NTP version number sent in requests (1..4).
      - port: UDP port of the servers.

    Outputs:
      - QueryConfig instance.
    """

    timeout: float = Field(default=5.0, gt=0)
    version: int = Field(default=4, ge=1, le=4)
    port: int = Field(default=123, ge=1, le=65535)

    class Config:
        extra = "forbid"


class DnsConfig(BaseModel):
    """Brief: Settings for reverse name lookups.

    Inputs:
      - enabled: When False all output is numeric.
      - nameservers: Explicit nameservers; empty means use resolv.conf.
      - timeout: Lifetime of each PTR lookup in seconds.

    Outputs:
      - DnsConfig instance.
    """

    enabled: bool = True
    nameservers: List[str] = Field(default_factory=list)
    timeout: float = Field(default=2.0, gt=0)

    class Config:
        extra = "forbid"


class SntpqConfig(BaseModel):
    """Brief: Top-level configuration.

    Inputs:
      - follow: Follow chains of time sources by default.
      - max_hops: Recursion budget per command line target.
      - query: QueryConfig.
      - dns: DnsConfig.
      - logging: Mapping passed to init_logging().

    Outputs:
      - SntpqConfig instance.
    """

    follow: bool = False
    max_hops: int = Field(default=DEFAULT_MAX_HOPS, ge=0)
    query: QueryConfig = Field(default_factory=QueryConfig)
    dns: DnsConfig = Field(default_factory=DnsConfig)
    logging: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "forbid"

"""sntpq: query (S)NTP servers and follow their chain of time sources."""

__version__ = "0.3.0"

"""Configuration loading and logging setup for sntpq."""

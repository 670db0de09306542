"""Shared utilities for btcstats."""

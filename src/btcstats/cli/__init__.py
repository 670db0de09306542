"""CLI module for btcstats.

Provides the command-line interface for analyzing image sets.
"""

from __future__ import annotations

from btcstats.cli.main import AverageMethod, QuantMethod, app

__all__ = ["AverageMethod", "QuantMethod", "app"]

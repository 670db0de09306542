"""btcstats: ternary texture statistics for image sets.

Computes binary/ternary correlation ("BTC") texture statistics over
patches of images, optionally restricted to masked regions, and
aggregates them across objects and image sets.
"""

__version__ = "0.1.0"

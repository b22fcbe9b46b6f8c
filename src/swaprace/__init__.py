"""SwapRace - multi-provider quote aggregation and swap execution."""

__version__ = "0.1.0"

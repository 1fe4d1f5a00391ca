"""stockfeed - stock reference data and news sync engine."""

__version__ = "1.0.0"

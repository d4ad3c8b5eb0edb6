"""Marketplace order tally: free-text order parsing and size-bucketed summaries."""

__version__ = "0.1.0"

"""
Backend SatStack — sync core for a personal Bitcoin DCA dashboard.

Pulls incoming transfers for tracked addresses from two block explorers,
merges and deduplicates them, prices each new transaction from a daily
BTC/USD close series, and persists only the incremental delta.
"""

__version__ = "0.1.0"

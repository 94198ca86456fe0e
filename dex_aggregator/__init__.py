"""
DEX Token Aggregator

Merges token data from several DEX data providers into one ranked,
cursor-paginated feed.
"""

__version__ = "0.1.0"

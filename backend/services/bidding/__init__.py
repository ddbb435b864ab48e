"""
Bidding service for post & quote jobs.

This module handles:
    - Submitting bids (with auto-hire at or below the accept price)
    - Ranking pending bids for the customer
    - Withdrawing bids
"""

from .bids import submit_bid, rank_bids, withdraw_bid, validate_bid_input

__all__ = [
    "submit_bid",
    "rank_bids",
    "withdraw_bid",
    "validate_bid_input",
]

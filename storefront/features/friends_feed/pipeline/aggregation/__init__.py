"""
Aggregation package for the friends feed.

Merges many contacts' combined datasets into one ranked list with one
record per product.
"""

from .service import ScoreAggregator, score_aggregator

__all__ = ["ScoreAggregator", "score_aggregator"]

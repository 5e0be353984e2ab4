"""
Pipeline components for the friends feed.

Pure, I/O-free stages: per-contact scoring (combined datasets), multi-contact
aggregation, and the feed-scoped similarity lookup.
"""

__all__ = ["aggregation", "scoring", "similarity"]

"""
Per-contact scoring: maps every wishlist, order and watch-time entry of a
contact into the common scored shape and derives the contact's counters.
"""

from .service import ContactProfile, compute_contact_metadata, get_combined_dataset

__all__ = ["ContactProfile", "compute_contact_metadata", "get_combined_dataset"]

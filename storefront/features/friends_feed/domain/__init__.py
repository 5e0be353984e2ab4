"""
Domain subpackage for the friends feed feature.
"""

from .errors import (
    ContactNotFoundError,
    ErrorKind,
    FriendsFeedError,
    InsufficientSelectionError,
    InvalidFiltersError,
    NoActiveFeedError,
    PersistenceError,
    UploadNotFoundError,
    UploadValidationError,
)
from .models import (
    AggregatedProduct,
    Contact,
    DataUpload,
    Feed,
    FeedFilters,
    Product,
    ScoredItem,
    SourceType,
)

__all__ = [
    "AggregatedProduct",
    "Contact",
    "ContactNotFoundError",
    "DataUpload",
    "ErrorKind",
    "Feed",
    "FeedFilters",
    "FriendsFeedError",
    "InsufficientSelectionError",
    "InvalidFiltersError",
    "NoActiveFeedError",
    "PersistenceError",
    "Product",
    "ScoredItem",
    "SourceType",
    "UploadNotFoundError",
    "UploadValidationError",
]

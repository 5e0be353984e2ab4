"""
Friends feed feature package.

Turns the shopping behaviour of contacts a user selects (wishlists, order
history, watch time) into a single ranked, deduplicated product feed, plus
a similar-products lookup scoped to that feed. Every layer of the feature
lives here: domain models, pipeline, repositories, services, jobs and the
API router.
"""

from .api.router import router as friends_router  # noqa: F401
from .domain.models import Contact, DataUpload, Feed  # noqa: F401
from .pipeline.aggregation import ScoreAggregator, score_aggregator  # noqa: F401
from .services.feed_service import FeedBuilder, feed_builder  # noqa: F401

"""
Per-contact scoring of wishlist, order and watch-time entries.
"""

import pytest
from fakes import make_contact, order, watch, wish

from storefront.features.friends_feed.domain.models import ProductDatasets, SourceType
from storefront.features.friends_feed.pipeline.scoring import (
    ContactProfile,
    compute_contact_metadata,
    get_combined_dataset,
)
from storefront.features.friends_feed.pipeline.scoring.service import (
    score_order_entry,
    score_watch_time_entry,
    score_wishlist_entry,
)


@pytest.mark.parametrize("priority,expected", [(1, 2.0), (3, 6.0), (5, 10.0)])
def test_wishlist_score_is_priority_times_two(priority, expected):
    assert score_wishlist_entry(wish("p1", priority=priority)) == expected


def test_wishlist_priority_defaults_to_one():
    entry = wish("p1")
    entry.priority = None
    assert score_wishlist_entry(entry) == 2.0


def test_order_score_uses_rating_times_three():
    assert score_order_entry(order("p1", rating=5)) == 15.0
    assert score_order_entry(order("p1", rating=1)) == 3.0


def test_unrated_order_scores_as_rating_three():
    assert score_order_entry(order("p1")) == 9.0


def test_watch_time_score_below_caps():
    # 5 minutes + 2 views
    assert score_watch_time_entry(watch("p1", 300, view_count=2)) == 7.0


def test_watch_time_score_caps_minutes_and_views():
    assert score_watch_time_entry(watch("p1", 10000, view_count=50)) == 15.0


def test_combined_dataset_keeps_every_entry_in_source_order():
    contact = make_contact(
        "c1",
        wishlist=[wish("p1", priority=2), wish("p2")],
        orders=[order("p1", rating=4)],
        watches=[watch("p1", 120, view_count=3)],
    )

    items = get_combined_dataset(contact)

    assert [(i.product_id, i.source) for i in items] == [
        ("p1", SourceType.WISHLIST),
        ("p2", SourceType.WISHLIST),
        ("p1", SourceType.ORDER_HISTORY),
        ("p1", SourceType.WATCH_TIME),
    ]
    assert [i.relevance_score for i in items] == [4.0, 2.0, 12.0, 5.0]


def test_combined_dataset_of_empty_contact_is_empty():
    assert get_combined_dataset(make_contact("c1")) == []


def test_order_item_carries_rating_and_quantity():
    contact = make_contact("c1", orders=[order("p9", rating=2, quantity=3, name="Lamp")])

    (item,) = get_combined_dataset(contact)

    assert item.rating == 2
    assert item.quantity == 3
    assert item.name == "Lamp"
    assert item.price == 10.0


def test_profile_caches_combined_dataset():
    profile = ContactProfile(make_contact("c1", wishlist=[wish("p1")]))

    assert profile.combined_dataset() is profile.combined_dataset()
    assert profile.id == "c1"


def test_contact_metadata_counts_entries_and_minutes():
    datasets = ProductDatasets(
        wishlist=[wish("p1"), wish("p2")],
        order_history=[order("p3")],
        watch_time=[watch("p1", 90), watch("p4", 30)],
    )

    metadata = compute_contact_metadata(datasets)

    assert metadata.total_products == 5
    assert metadata.total_orders == 1
    assert metadata.total_watch_time == 2.0

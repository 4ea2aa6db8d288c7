"""
Unit tests for AnalyticsAggregator.

Covers:
    - Unique-click counting per link per calendar date
    - Conversion totals with and without a stored row
    - Date parsing and referential transparency
"""

from datetime import date, datetime

import pytest

from affiliate_platform.analytics.aggregator import parse_day
from affiliate_platform.errors import ValidationError

DAY = datetime(2024, 5, 1, 9, 0)
NEXT_DAY = datetime(2024, 5, 2, 0, 0, 1)


def test_same_ip_same_day_counts_once(storage, aggregator):
    storage.insert_click(1, "192.168.1.1", DAY)
    storage.insert_click(1, "192.168.1.1", DAY.replace(hour=17))
    assert aggregator.unique_clicks_on_date(1, "2024-05-01") == 1


def test_distinct_ip_raises_count(storage, aggregator):
    storage.insert_click(1, "192.168.1.1", DAY)
    storage.insert_click(1, "192.168.1.1", DAY)
    storage.insert_click(1, "192.168.1.2", DAY)
    assert aggregator.unique_clicks_on_date(1, "2024-05-01") == 2


def test_other_dates_and_links_do_not_count(storage, aggregator):
    storage.insert_click(1, "192.168.1.1", DAY)
    storage.insert_click(1, "192.168.1.3", NEXT_DAY)
    storage.insert_click(2, "192.168.1.4", DAY)

    assert aggregator.unique_clicks_on_date(1, "2024-05-01") == 1
    assert aggregator.unique_clicks_on_date(1, "2024-05-02") == 1
    assert aggregator.unique_clicks_on_date(1, date(2024, 5, 1)) == 1


def test_no_clicks_is_zero(aggregator):
    assert aggregator.unique_clicks_on_date(42, "2024-05-01") == 0


def test_repeated_queries_are_stable(storage, aggregator):
    storage.insert_click(1, "192.168.1.1", DAY)
    storage.insert_click(1, "192.168.1.2", DAY)
    results = {aggregator.unique_clicks_on_date(1, "2024-05-01") for _ in range(5)}
    assert results == {2}


@pytest.mark.parametrize("bad", ["2024-13-01", "yesterday", "", "01/05/2024", "20240501", "2024-W18-3", "2024-5-1", "2024-02-30"])
def test_bad_date_rejected(aggregator, bad):
    with pytest.raises(ValidationError, match="expected YYYY-MM-DD"):
        aggregator.unique_clicks_on_date(1, bad)


def test_parse_day_accepts_date_and_datetime():
    assert parse_day(date(2024, 5, 1)) == date(2024, 5, 1)
    assert parse_day(datetime(2024, 5, 1, 12)) == date(2024, 5, 1)
    assert parse_day(" 2024-05-01 ") == date(2024, 5, 1)


def test_conversion_total_defaults_to_zero(storage, aggregator):
    assert aggregator.conversion_total("nobody") == 0
    assert aggregator.conversion_total("") == 0
    storage.add_conversion("user123", 50)
    assert aggregator.conversion_total("user123") == 50


def test_link_stats(storage, link_store, aggregator):
    owned = link_store.create("https://example.com", "user123")
    orphan = link_store.create("https://example.org")
    storage.insert_click(owned.id, "10.0.0.1", DAY)
    storage.add_conversion("user123", 30)

    assert aggregator.link_stats(owned, "2024-05-01") == {"unique_clicks": 1, "total_conversions": 30}
    assert aggregator.link_stats(orphan, "2024-05-01") == {"unique_clicks": 0, "total_conversions": 0}

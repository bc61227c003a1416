"""
Unit Tests - Store Summaries and Hourly Traffic
"""
from datetime import date

import pytest

from retention_analytics.analytics.hourly import DayScope, hourly_profile
from retention_analytics.analytics.lookup import build_global_lookup
from retention_analytics.analytics.stores import BRAND_WIDE, compute_store_summaries
from retention_analytics.transformation.enrichers import build_member_profiles


@pytest.fixture
def store_df(make_transactions):
    return make_transactions([
        {"member_id": "m1", "visit_date": "2024-01-05", "is_true_new_visit": True},
        {"member_id": "m2", "visit_date": "2024-01-06"},
        {"member_id": "m2", "visit_date": "2024-02-06"},
        {"member_id": "m3", "visit_date": "2024-02-07", "store": "East", "is_true_new_visit": True},
        {"member_id": "m3", "visit_date": "2024-04-01", "store": "East"},
        {"member_id": "訪客", "visit_date": "2024-04-10"},
        {"member_id": "m4", "visit_date": "2024-04-10", "store": "East"},
    ])


@pytest.fixture
def hourly_df(make_transactions):
    # 2024-03-04 is a Monday, 2024-03-09 a Saturday
    return make_transactions([
        {"member_id": "m1", "visit_date": "2024-03-04", "hour": 10, "duration_minutes": 30.0},
        {"member_id": "m2", "visit_date": "2024-03-04", "hour": 11, "duration_minutes": 90.0},
        {"member_id": "m3", "visit_date": "2024-03-09", "hour": 10, "duration_minutes": 40.0},
        {"member_id": "m4", "visit_date": "2024-03-09", "hour": 12, "duration_minutes": 650.0},
    ])


class TestStoreSummaries:
    """Tests for compute_store_summaries"""

    def _summaries(self, df):
        return compute_store_summaries(df, build_global_lookup(df), build_member_profiles(df))

    def test_brand_wide_first(self, store_df):
        summaries = self._summaries(store_df)

        assert list(summaries) == [BRAND_WIDE, "East", "Main"]
        assert summaries[BRAND_WIDE].is_brand_wide
        assert summaries[BRAND_WIDE].total_orders == 7
        assert summaries[BRAND_WIDE].member_rate == pytest.approx(600 / 7)

    def test_brand_wide_lost_and_one_time(self, store_df):
        brand = self._summaries(store_df)[BRAND_WIDE]

        # m1 and m3 are mature new customers, only m1 never came back
        assert brand.one_time_rate == 50.0
        assert brand.one_time_defined
        # m1 (1 visit) and m2 (2 visits) are past the lost window
        assert brand.avg_lost_visits == 1.5

    def test_per_store(self, store_df):
        summaries = self._summaries(store_df)
        main, east = summaries["Main"], summaries["East"]

        assert main.total_orders == 4
        assert main.member_rate == 75.0
        assert main.one_time_rate == 100.0
        assert main.avg_lost_visits == 1.5
        assert main.avg_retention == 50.0

        assert east.one_time_rate == 0.0
        assert east.one_time_defined
        assert east.avg_lost_visits == 0.0

    def test_empty(self, make_transactions):
        df = make_transactions([])
        assert compute_store_summaries(df, build_global_lookup(df), {}) == {}


class TestHourlyProfile:
    """Tests for hourly_profile"""

    def test_all_days(self, hourly_df):
        profile = hourly_profile(hourly_df)

        assert profile.hours == list(range(10, 22))
        assert profile.days == 2
        assert profile.entries_per_day[:3] == [1.0, 0.5, 0.5]
        assert profile.completions_per_day[0] == 1.0
        assert profile.completions_per_day[2] == 0.5
        assert profile.orders_per_day == 2.0

    def test_duration_bounds(self, hourly_df):
        """Durations of 600 minutes or more are left out of the average"""
        profile = hourly_profile(hourly_df)

        assert profile.avg_duration_minutes == pytest.approx(53.3)
        # Last service per day: 90 on Monday, 650 on Saturday
        assert profile.avg_last_service_minutes == 370.0

    def test_weekday_scope(self, hourly_df):
        profile = hourly_profile(hourly_df, scope=DayScope.WEEKDAY)

        assert profile.days == 1
        assert profile.entries_per_day[:2] == [1.0, 1.0]
        assert profile.filters["scope"] == "weekday"

    def test_weekend_scope(self, hourly_df):
        profile = hourly_profile(hourly_df, scope="weekend")

        assert profile.days == 1
        assert profile.orders_per_day == 2.0

    def test_since_filter(self, hourly_df):
        profile = hourly_profile(hourly_df, since=date(2024, 3, 5))

        assert profile.days == 1
        assert profile.filters["since"] == "2024-03-05"

    def test_no_orders(self, hourly_df):
        profile = hourly_profile(hourly_df, store="East")

        assert profile.days == 1
        assert sum(profile.entries_per_day) == 0.0
        assert profile.avg_duration_minutes == 0.0
        assert profile.orders_per_day == 0.0

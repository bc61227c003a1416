"""
Unit Tests - Retention Pipeline
"""
import pytest
import polars as pl

from retention_analytics.analytics.lost_cohort import CohortKind
from retention_analytics.analytics.stores import BRAND_WIDE
from retention_analytics.pipeline import RetentionPipeline, filter_view
from retention_analytics.transformation.enrichers import MemberImport


@pytest.fixture
def member_import():
    return {"m1": MemberImport(2), "m3": MemberImport(1, age_years=30)}


@pytest.fixture
def unflagged_df(six_month_df):
    return six_month_df.with_columns(pl.lit(False).alias("is_true_new_visit"))


class TestRetentionPipeline:
    """Tests for RetentionPipeline"""

    def test_prepare_flags_and_indexes(self, unflagged_df, member_import):
        dataset = RetentionPipeline(member_import).prepare(unflagged_df)

        assert dataset.transactions["is_true_new_visit"].sum() == 2
        assert dataset.lookup.last_month == "2024-06"
        assert set(dataset.profiles) == {"m1", "m2", "m3"}
        assert dataset.available_years == ["2024"]

    def test_input_left_untouched(self, unflagged_df, member_import):
        RetentionPipeline(member_import).run(unflagged_df)
        assert not unflagged_df["is_true_new_visit"].any()

    def test_full_report(self, unflagged_df, member_import):
        report = RetentionPipeline(member_import).run(unflagged_df)

        assert report.months == ["2024-01", "2024-02", "2024-03", "2024-04", "2024-05", "2024-06"]
        assert report.total_orders == 9
        assert report.unique_members == 3
        assert report.monthly_stats["2024-01"].new_count == 2
        assert report.monthly_stats["2024-06"].churn_rate is None
        assert "Amy" in report.provider_stats
        assert BRAND_WIDE in report.store_summaries
        assert len(report.member_statuses) == 3
        assert report.duration_seconds >= 0

    def test_lost_cohorts(self, unflagged_df, member_import):
        report = RetentionPipeline(member_import).run(unflagged_df)

        assert report.lost_cohorts[CohortKind.ONE_TIME].member_count == 1
        assert report.lost_cohorts[CohortKind.CHURN].member_count == 2

    def test_empty_lost_cohort_without_import(self, unflagged_df):
        report = RetentionPipeline({}).run(unflagged_df)
        assert report.lost_cohorts[CohortKind.ONE_TIME] is None

    def test_store_filter_keeps_global_horizon(self, unflagged_df, member_import):
        pipeline = RetentionPipeline(member_import)
        dataset = pipeline.prepare(unflagged_df)
        report = pipeline.report(dataset, year="2024", store="Main")

        assert report.filters == {"year": "2024", "store": "Main"}
        assert report.monthly_stats["2024-04"].churn_rate is not None

    def test_filter_matching_nothing(self, unflagged_df, member_import):
        pipeline = RetentionPipeline(member_import)
        report = pipeline.report(pipeline.prepare(unflagged_df), store="East")

        assert report.months == []
        assert report.total_orders == 0
        assert report.provider_stats == {}
        assert report.avg_retention == 0.0
        # Lifecycle and lost cohorts always cover the whole dataset
        assert len(report.member_statuses) == 3

    def test_raw_input_is_normalized(self, sample_raw_df):
        report = RetentionPipeline().run(sample_raw_df)

        assert report.total_orders == 4
        assert report.months == ["2024-01", "2024-02"]


class TestFilterView:
    """Tests for filter_view"""

    def test_year_prefix(self, make_transactions):
        df = make_transactions([
            {"member_id": "m1", "visit_date": "2023-12-10"},
            {"member_id": "m1", "visit_date": "2024-01-10"},
        ])

        assert filter_view(df, year="2024")["month"].to_list() == ["2024-01"]
        assert len(filter_view(df, year="all")) == 2
        assert len(filter_view(df)) == 2

    def test_store(self, make_transactions):
        df = make_transactions([
            {"member_id": "m1", "visit_date": "2024-01-10", "store": "East"},
            {"member_id": "m1", "visit_date": "2024-01-11"},
        ])

        assert filter_view(df, store="East")["store"].to_list() == ["East"]
        assert len(filter_view(df, store="all")) == 2

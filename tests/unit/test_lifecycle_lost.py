"""
Unit Tests - Member Lifecycle and Lost Cohorts
"""
from datetime import date, timedelta

import pytest

from retention_analytics.analytics.lifecycle import (
    LifecycleStatus,
    age_band,
    age_distribution,
    classify_lifecycle,
    compute_member_statuses,
    lifecycle_counts,
)
from retention_analytics.analytics.lost_cohort import (
    CohortKind,
    profile_lost_cohort,
    top_entries,
)
from retention_analytics.exceptions import UnknownCohortError
from retention_analytics.transformation.enrichers import MemberImport, build_member_profiles

LATEST = date(2024, 6, 30)


class TestClassifyLifecycle:
    """Tests for lifecycle thresholds"""

    @pytest.mark.parametrize("days,expected", [
        (0, LifecycleStatus.ACTIVE),
        (59, LifecycleStatus.ACTIVE),
        (60, LifecycleStatus.DORMANT),
        (119, LifecycleStatus.DORMANT),
        (120, LifecycleStatus.AT_RISK),
        (179, LifecycleStatus.AT_RISK),
        (180, LifecycleStatus.LOST),
        (400, LifecycleStatus.LOST),
    ])
    def test_boundaries(self, days, expected):
        assert classify_lifecycle(days) == expected


class TestMemberStatuses:
    """Tests for compute_member_statuses"""

    @pytest.fixture
    def status_df(self, make_transactions):
        return make_transactions([
            {"member_id": "fresh", "visit_date": LATEST},
            {"member_id": "d60", "visit_date": LATEST - timedelta(days=60)},
            {"member_id": "d130", "visit_date": LATEST - timedelta(days=130)},
            {"member_id": "d130", "visit_date": LATEST - timedelta(days=130), "store": "East"},
            {"member_id": "d200", "visit_date": LATEST - timedelta(days=200)},
            {"member_id": "訪客", "visit_date": LATEST},
        ])

    def test_statuses_relative_to_latest(self, status_df):
        statuses = {s.member_id: s for s in compute_member_statuses(status_df)}

        assert set(statuses) == {"fresh", "d60", "d130", "d200"}
        assert statuses["fresh"].status == LifecycleStatus.ACTIVE
        assert statuses["d60"].status == LifecycleStatus.DORMANT
        assert statuses["d130"].status == LifecycleStatus.AT_RISK
        assert statuses["d130"].days_since_last_visit == 130
        assert statuses["d130"].visit_count == 2
        assert statuses["d200"].status == LifecycleStatus.LOST

    def test_most_recent_first(self, status_df):
        statuses = compute_member_statuses(status_df)
        assert [s.member_id for s in statuses] == ["fresh", "d60", "d130", "d200"]

    def test_counts(self, status_df):
        counts = lifecycle_counts(compute_member_statuses(status_df))
        assert counts == {
            LifecycleStatus.ACTIVE: 1,
            LifecycleStatus.DORMANT: 1,
            LifecycleStatus.AT_RISK: 1,
            LifecycleStatus.LOST: 1,
        }

    def test_age_distribution(self, status_df):
        statuses = compute_member_statuses(status_df)
        imports = {
            "fresh": MemberImport(1, age_years=22),
            "d60": MemberImport(1, age_years=40),
            "d200": MemberImport(1),
        }
        bands = age_distribution(statuses, imports)

        assert list(bands) == ["Main"]
        assert bands["Main"]["18-24"] == 1
        assert bands["Main"]["35-44"] == 1
        assert sum(bands["Main"].values()) == 2

    @pytest.mark.parametrize("age,band", [(17, "<18"), (18, "18-24"), (34, "25-34"), (54, "45-54"), (70, "55+")])
    def test_age_band(self, age, band):
        assert age_band(age) == band

    def test_empty(self, make_transactions):
        assert compute_member_statuses(make_transactions([])) == []


class TestLostCohort:
    """Tests for profile_lost_cohort"""

    @pytest.fixture
    def lost_df(self, make_transactions):
        return make_transactions([
            {"member_id": "n1", "visit_date": "2024-03-01", "style_text": "寸頭", "provider": "Amy",
             "is_true_new_visit": True},
            {"member_id": "n2", "visit_date": "2024-03-02", "is_true_new_visit": True},
            {"member_id": "n2", "visit_date": "2024-06-01"},
            {"member_id": "c1", "visit_date": "2024-01-10", "style_text": "寸頭", "provider": "Amy"},
            {"member_id": "c1", "visit_date": "2024-04-01", "style_text": "油頭 高漸層", "store": "East",
             "provider": "Bob"},
            {"member_id": "c1", "visit_date": "2024-04-01", "style_text": "凱薩", "provider": "Amy"},
            {"member_id": "e1", "visit_date": "2024-05-01"},
            {"member_id": "r1", "visit_date": LATEST},
        ])

    def test_one_time_cohort(self, lost_df):
        profile = profile_lost_cohort(lost_df, build_member_profiles(lost_df), CohortKind.ONE_TIME)

        assert profile.member_count == 1
        assert profile.primary_styles == {"寸頭": 1}
        assert profile.providers_by_store == {"Main": {"Amy": 1}}

    def test_churn_cohort_uses_last_visit(self, lost_df):
        """The first row of the latest visit date represents the member"""
        profile = profile_lost_cohort(lost_df, build_member_profiles(lost_df), "churn")

        assert profile.kind == CohortKind.CHURN
        assert profile.member_count == 2
        assert profile.primary_styles == {"寸頭": 1, "油頭": 1}
        assert profile.secondary_styles == {"其他": 1, "高漸層": 1}
        assert profile.providers_by_store == {"Main": {"Amy": 1}, "East": {"Bob": 1}}

    def test_window_is_strict(self, lost_df):
        """Exactly sixty days before the latest visit is not lost"""
        profile = profile_lost_cohort(lost_df, build_member_profiles(lost_df), CohortKind.CHURN)
        assert profile.member_count == 2  # e1 is not included

    def test_top_entries(self, lost_df):
        profile = profile_lost_cohort(lost_df, build_member_profiles(lost_df), CohortKind.CHURN)

        top = profile.top_primary()
        assert len(top) == 2
        assert all(pct == 50.0 for _, _, pct in top)
        assert profile.top_providers() == {"East": [("Bob", 1, 50.0)], "Main": [("Amy", 1, 50.0)]}

    def test_empty_cohort_is_none(self, make_transactions):
        df = make_transactions([{"member_id": "r1", "visit_date": LATEST}])
        assert profile_lost_cohort(df, build_member_profiles(df), CohortKind.CHURN) is None

    def test_unknown_kind(self, lost_df):
        with pytest.raises(UnknownCohortError):
            profile_lost_cohort(lost_df, build_member_profiles(lost_df), "vanished")

    def test_top_entries_limits_and_orders(self):
        ranked = top_entries({"a": 1, "b": 5, "c": 3, "d": 2}, total=11)

        assert [label for label, _, _ in ranked] == ["b", "c", "d"]
        assert top_entries({"a": 1}, total=0) == [("a", 1, 0.0)]

"""Unit tests for the group-by query tool."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from crm_insights.analytics import MAX_QUERY_GROUPS, QueryDispatcher, QueryFilters, QueryRequest, run_query
from crm_insights.analytics.query import Dimension, uses_closing_date
from crm_insights.models.opportunity import OpportunityStatus

WON = OpportunityStatus.WON
LOST = OpportunityStatus.LOST


def _dt(year: int, month: int, day: int = 1) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def _request(group_by=(), **filters) -> QueryRequest:
    return QueryRequest(filters=QueryFilters(**filters), group_by=list(group_by))


class TestQueryFilters:
    """Tests for filter validation."""

    def test_status_case_insensitive(self) -> None:
        assert QueryFilters(status="won").status is WON
        assert QueryFilters(status=" LOST ").status is LOST

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            QueryFilters(status="pending")

    @pytest.mark.parametrize("month", [0, 13])
    def test_month_out_of_range(self, month: int) -> None:
        with pytest.raises(ValidationError):
            QueryFilters(month=month)

    def test_blank_text_filter_is_unset(self) -> None:
        assert QueryFilters(seller="  ").seller is None

    def test_unknown_dimension_rejected(self) -> None:
        with pytest.raises(ValidationError):
            QueryRequest(group_by=["weekday"])


class TestDateField:
    """Tests for the closing-vs-creation date heuristic."""

    def test_won_status_uses_closing_date(self) -> None:
        assert uses_closing_date(QueryFilters(status="Won"))

    @pytest.mark.parametrize("question", ["Quantas vendas em março?", "Total REVENUE by seller", "what sold best"])
    def test_sales_words_use_closing_date(self, question: str) -> None:
        assert uses_closing_date(QueryFilters(), question)

    def test_default_is_creation_date(self) -> None:
        assert not uses_closing_date(QueryFilters(status="Lost"), "how many leads came in?")


class TestRunQuery:
    """Tests for run_query filtering, grouping and ranking."""

    def test_no_group_by_gives_total(self, opp_factory) -> None:
        rows = [opp_factory(amount=10.0), opp_factory(amount=5.0, status=WON)]
        result = run_query(rows, _request())
        (total,) = result.rows
        assert total.group == "Total"
        assert total.count == 2
        assert total.revenue == 5.0
        assert total.pipeline_amount == 15.0
        assert result.matched == 2

    def test_month_grouping_keeps_years_apart(self, opp_factory) -> None:
        rows = [
            opp_factory(created_at=_dt(2024, 3), amount=1.0),
            opp_factory(created_at=_dt(2025, 3), amount=2.0),
        ]
        result = run_query(rows, _request(["month"]))
        assert {r.group for r in result.rows} == {"03/2024", "03/2025"}

    def test_composite_key_follows_group_by_order(self, opp_factory) -> None:
        rows = [opp_factory(seller="Ana", region_code="SP")]
        assert run_query(rows, _request(["seller", "region"])).rows[0].group == "Ana | SP"
        assert run_query(rows, _request(["region", "seller"])).rows[0].group == "SP | Ana"

    def test_groups_capped(self, opp_factory) -> None:
        rows = [opp_factory(customer_name=f"c{i:02d}", amount=float(i), status=WON) for i in range(60)]
        result = run_query(rows, _request(["customer"]))
        assert len(result.rows) == MAX_QUERY_GROUPS
        assert result.total_groups == 60
        assert result.truncated is True
        assert result.rows[0].group == "c59"

    def test_requested_cap_cannot_exceed_hard_cap(self, opp_factory) -> None:
        rows = [opp_factory(customer_name=f"c{i}") for i in range(60)]
        result = run_query(rows, _request(["customer"]), max_groups=500)
        assert len(result.rows) == MAX_QUERY_GROUPS

    def test_smaller_cap(self, opp_factory) -> None:
        rows = [opp_factory(customer_name=f"c{i}") for i in range(5)]
        result = run_query(rows, _request(["customer"]), max_groups=2)
        assert len(result.rows) == 2
        assert result.truncated is True

    def test_ranking(self, opp_factory) -> None:
        """Won revenue, then lost revenue, then count, then name."""
        rows = [
            opp_factory(seller="low", amount=1.0, status=WON),
            opp_factory(seller="high", amount=100.0, status=WON),
            opp_factory(seller="lost", amount=50.0, status=LOST),
            opp_factory(seller="open", amount=500.0),
            opp_factory(seller="open", amount=500.0),
            opp_factory(seller="b-tie", amount=10.0, status=WON),
            opp_factory(seller="a-tie", amount=10.0, status=WON),
        ]
        groups = [r.group for r in run_query(rows, _request(["seller"])).rows]
        assert groups == ["high", "a-tie", "b-tie", "low", "lost", "open"]

    def test_open_and_lost_amounts_are_not_revenue(self, opp_factory) -> None:
        """A large lost deal does not outrank a small sale."""
        rows = [
            opp_factory(seller="Loser", amount=10000.0, status=LOST),
            opp_factory(seller="Closer", amount=100.0, status=WON),
        ]
        result = run_query(rows, _request(["seller"]))
        assert [(r.group, r.revenue, r.lost_revenue) for r in result.rows] == [
            ("Closer", 100.0, 0.0),
            ("Loser", 0.0, 10000.0),
        ]
        assert result.rows[1].pipeline_amount == 10000.0

    def test_lost_revenue_ranks_loss_queries(self, opp_factory) -> None:
        """With only lost deals, the larger loss comes first."""
        rows = [
            opp_factory(seller="small", amount=10.0, status=LOST),
            opp_factory(seller="big", amount=90.0, status=LOST),
            opp_factory(seller="big", amount=1.0, status=OpportunityStatus.OPEN),
        ]
        result = run_query(rows, _request(["seller"], status="Lost"))
        assert [r.group for r in result.rows] == ["big", "small"]

    def test_ranking_by_count_when_revenue_equal(self, opp_factory) -> None:
        rows = [
            opp_factory(seller="one", amount=0.0),
            opp_factory(seller="two", amount=0.0),
            opp_factory(seller="two", amount=0.0),
        ]
        assert [r.group for r in run_query(rows, _request(["seller"])).rows] == ["two", "one"]

    def test_substring_filters_case_insensitive(self, opp_factory) -> None:
        rows = [opp_factory(seller="Ana Souza"), opp_factory(seller="Bruno Lima")]
        result = run_query(rows, _request(seller="souza"))
        assert result.matched == 1

    def test_status_filter(self, opp_factory) -> None:
        rows = [opp_factory(status=WON, closed_at=_dt(2024, 4)), opp_factory(status=LOST)]
        result = run_query(rows, _request(["status"], status="Won"))
        assert [r.group for r in result.rows] == ["Won"]
        assert result.date_field == "closed_at"

    def test_year_and_month_filter_on_creation_date(self, opp_factory) -> None:
        rows = [
            opp_factory(created_at=_dt(2024, 3, 5)),
            opp_factory(created_at=_dt(2024, 4, 5)),
            opp_factory(created_at=_dt(2023, 3, 5)),
        ]
        result = run_query(rows, _request(year=2024, month=3))
        assert result.matched == 1
        assert result.date_field == "created_at"

    def test_month_without_year_uses_default_year(self, opp_factory) -> None:
        rows = [opp_factory(created_at=_dt(2024, 3)), opp_factory(created_at=_dt(2025, 3))]
        result = run_query(rows, _request(month=3), default_year=2025)
        assert result.matched == 1
        assert result.filters_applied == {"month": 3, "year": 2025}

    def test_sales_question_filters_on_closing_date(self, opp_factory) -> None:
        rows = [
            opp_factory(created_at=_dt(2024, 1), closed_at=_dt(2024, 3), status=WON),
            opp_factory(created_at=_dt(2024, 3), closed_at=_dt(2024, 6), status=WON),
        ]
        result = run_query(rows, _request(year=2024, month=3), question="vendas de março")
        assert result.matched == 1
        assert result.date_field == "closed_at"

    def test_missing_closing_date_excluded_from_date_filters(self, opp_factory) -> None:
        rows = [opp_factory(status=WON, closed_at=None)]
        result = run_query(rows, _request(status="Won", year=2024))
        assert result.matched == 0
        assert result.rows == []

    def test_missing_closing_date_projects_na(self, opp_factory) -> None:
        rows = [opp_factory(status=WON, closed_at=None)]
        result = run_query(rows, _request(["month"], status="Won"))
        assert result.rows[0].group == "N/A"

    def test_year_dimension(self, opp_factory) -> None:
        rows = [opp_factory(created_at=_dt(2023, 5)), opp_factory(created_at=_dt(2024, 5))]
        assert {r.group for r in run_query(rows, _request(["year"])).rows} == {"2023", "2024"}

    def test_filters_applied_omits_unset(self, opp_factory) -> None:
        result = run_query([opp_factory()], _request(seller="Ana", status="lost"))
        assert result.filters_applied == {"seller": "Ana", "status": "Lost"}
        assert result.group_by == []

    def test_group_by_values_echoed(self, opp_factory) -> None:
        result = run_query([opp_factory()], _request([Dimension.LOSS_REASON, "stage"]))
        assert result.group_by == ["loss_reason", "stage"]
        assert result.rows[0].group == "Not informed | General"


class TestQueryDispatcher:
    """Tests for QueryDispatcher against a store."""

    def test_dispatch_is_owner_scoped(self, store, opp_factory) -> None:
        store.upsert_many([opp_factory(seller="Ana"), opp_factory(owner_id="other", seller="Ana")])
        result = QueryDispatcher(store, page_size=1).dispatch("owner-1", _request(["seller"]))
        assert result.matched == 1
        assert result.rows[0].count == 1

    def test_dispatch_uses_default_year(self, store, opp_factory) -> None:
        store.upsert_many([opp_factory(created_at=_dt(2024, 3))])
        dispatcher = QueryDispatcher(store, default_year=2024)
        assert dispatcher.dispatch("owner-1", _request(month=3)).matched == 1

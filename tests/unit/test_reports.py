"""
Unit Tests - Report Pipeline
"""
import warnings
from datetime import date
from decimal import Decimal

import polars as pl
import pytest

from retail_analytics.exceptions import EmptyInputWarning, ReportFilterError, UnknownReportError
from retail_analytics.ingestion.store import RecordStore
from retail_analytics.reports import (
    ReportDefinition,
    ReportFilters,
    ReportPipeline,
    SortKey,
    available_reports,
    run_report,
    run_reports,
)
from retail_analytics.reports.definitions import REVENUE, LookupColumn
from retail_analytics.reports.pipeline import month_label
from retail_analytics.reports.results import sort_table

EXPECTED_REPORTS = {
    "store_revenue",
    "category_revenue",
    "weather_store_revenue",
    "category_season_revenue",
    "monthly_trend",
    "monthly_moving_average",
    "category_monthly_benchmark",
    "low_inventory_count",
    "category_promotion_revenue",
    "pricing_competitiveness",
    "season_weather_revenue",
    "region_revenue",
    "epidemic_revenue",
}


@pytest.fixture
def pipeline(sample_store) -> ReportPipeline:
    return ReportPipeline(sample_store)


class TestRevenueRollups:
    """Tests for the grouped revenue reports"""

    def test_store_revenue(self, pipeline):
        result = pipeline.run("store_revenue")

        assert result.columns == ("store_id", "units_sold", "revenue")
        assert result.to_records() == [
            {"store_id": "S001", "units_sold": 8, "revenue": Decimal("80.00")},
            {"store_id": "S002", "units_sold": 14, "revenue": Decimal("35.00")},
            {"store_id": "S006", "units_sold": 2, "revenue": Decimal("30.00")},
        ]

    def test_category_revenue(self, pipeline):
        result = pipeline.run("category_revenue")

        assert result.column("category") == ["Toys", "Groceries"]
        assert result.column("revenue") == [Decimal("110"), Decimal("35")]

    def test_weather_store_limited_to_benchmark_stores(self, pipeline):
        """S006 is not a benchmark store; sorted by store then revenue desc"""
        result = pipeline.run("weather_store_revenue")

        assert [(r["store_id"], r["weather"], r["revenue"]) for r in result] == [
            ("S001", "Sunny", Decimal("80")),
            ("S002", "Rainy", Decimal("25")),
            ("S002", "Sunny", Decimal("10")),
        ]

    def test_weather_store_with_explicit_stores(self, pipeline):
        """Caller store filter replaces the default store set"""
        result = pipeline.run("weather_store_revenue", {"store_ids": ["S006"]})

        assert [(r["store_id"], r["weather"]) for r in result] == [("S006", "Cloudy")]

    def test_category_season_revenue(self, pipeline):
        result = pipeline.run("category_season_revenue")

        assert [(r["category"], r["season"], r["revenue"]) for r in result] == [
            ("Toys", "Winter", Decimal("80")),
            ("Groceries", "Winter", Decimal("35")),
            ("Toys", "Spring", Decimal("30")),
        ]

    def test_season_weather_excludes_2024(self, pipeline):
        result = pipeline.run("season_weather_revenue")

        assert [(r["season"], r["weather"], r["revenue"]) for r in result] == [
            ("Winter", "Sunny", Decimal("80")),
            ("Spring", "Cloudy", Decimal("30")),
            ("Winter", "Rainy", Decimal("25")),
        ]

    def test_category_promotion_revenue(self, pipeline):
        """Grouped by promotion id; names come from the lookup"""
        result = pipeline.run("category_promotion_revenue")

        assert result.columns == ("category", "promotion", "promotion_name", "revenue")
        assert [
            (r["category"], r["promotion"], r["promotion_name"], r["revenue"]) for r in result
        ] == [
            ("Groceries", None, None, Decimal("35")),
            ("Toys", "PR1", "Spring Sale", Decimal("50")),
            ("Toys", None, None, Decimal("30")),
            ("Toys", "PR2", "Clearance", Decimal("30")),
        ]

    def test_promotions_sharing_a_name_stay_apart(self, make_fact, sample_lookups):
        """Unnamed and same-named promotions keep their own groups"""
        stores, dates, _ = sample_lookups
        promotions = {"PX": None, "PY": "Sale", "PZ": "Sale"}
        facts = [
            make_fact(promotion="PX", units_sold=1, price=Decimal("10")),
            make_fact(promotion=None, units_sold=1, price=Decimal("5")),
            make_fact(promotion="PY", units_sold=1, price=Decimal("4")),
            make_fact(promotion="PZ", units_sold=1, price=Decimal("6")),
        ]
        store = RecordStore(facts, stores=stores, dates=dates, promotions=promotions)

        result = ReportPipeline(store).run("category_promotion_revenue")

        assert [(r["promotion"], r["promotion_name"], r["revenue"]) for r in result] == [
            ("PX", None, Decimal("10.00")),
            (None, None, Decimal("5.00")),
            ("PY", "Sale", Decimal("4.00")),
            ("PZ", "Sale", Decimal("6.00")),
        ]

    def test_region_and_epidemic_revenue(self, pipeline):
        regions = pipeline.run("region_revenue")
        epidemic = pipeline.run("epidemic_revenue")

        assert regions.column("region") == ["North", "South", "East"]
        assert [(r["epidemic"], r["revenue"]) for r in epidemic] == [
            (False, Decimal("115")),
            (True, Decimal("30")),
        ]

    def test_revenue_conserved_across_reports(self, pipeline):
        """Unfiltered rollups all add up to the same total"""
        for name in ("store_revenue", "category_revenue", "category_season_revenue",
                     "monthly_trend", "region_revenue", "epidemic_revenue"):
            assert sum(pipeline.run(name).column("revenue")) == Decimal("145")


class TestMonthlyReports:
    """Tests for trend, moving average and benchmark reports"""

    def test_monthly_trend(self, pipeline):
        result = pipeline.run("monthly_trend")

        assert [(r["year"], r["month"], r["month_label"]) for r in result] == [
            (2023, 1, "Jan-23"),
            (2023, 2, "Feb-23"),
            (2023, 3, "Mar-23"),
            (2024, 1, "Jan-24"),
        ]
        assert result.column("revenue") == [Decimal("75"), Decimal("30"), Decimal("30"), Decimal("10")]
        assert result.column("units_sold") == [15, 3, 2, 4]

    def test_monthly_moving_average(self, pipeline):
        result = pipeline.run("monthly_moving_average")

        assert result.column("moving_avg_revenue") == [
            Decimal("75.00"),
            Decimal("52.50"),
            Decimal("45.00"),
            Decimal("23.33"),
        ]

    def test_category_monthly_benchmark(self, pipeline):
        result = pipeline.run("category_monthly_benchmark")

        assert [
            (r["category"], r["month_label"], r["monthly_income"], r["category_avg"],
             r["diff_from_avg"], r["performance"])
            for r in result
        ] == [
            ("Groceries", "Jan-23", Decimal("25"), Decimal("17.50"), Decimal("7.50"), "Above Avg"),
            ("Groceries", "Jan-24", Decimal("10"), Decimal("17.50"), Decimal("-7.50"), "Below Avg"),
            ("Toys", "Jan-23", Decimal("50"), Decimal("36.67"), Decimal("13.33"), "Above Avg"),
            ("Toys", "Feb-23", Decimal("30"), Decimal("36.67"), Decimal("-6.67"), "Below Avg"),
            ("Toys", "Mar-23", Decimal("30"), Decimal("36.67"), Decimal("-6.67"), "Below Avg"),
        ]

    def test_benchmark_equal_month_is_avg(self, make_fact, sample_lookups):
        """A category with identical months labels every month Avg"""
        stores, dates, promotions = sample_lookups
        facts = [
            make_fact(sale_date=date(2023, 1, 10), units_sold=2, price=Decimal("5")),
            make_fact(sale_date=date(2023, 2, 10), units_sold=1, price=Decimal("10")),
        ]
        store = RecordStore(facts, stores=stores, dates=dates, promotions=promotions)

        result = ReportPipeline(store).run("category_monthly_benchmark")

        assert result.column("performance") == ["Avg", "Avg"]
        assert result.column("diff_from_avg") == [Decimal("0"), Decimal("0")]

    def test_month_label(self):
        assert month_label(2023, 1) == "Jan-23"
        assert month_label(2024, 12) == "Dec-24"


class TestCountAndPricing:
    """Tests for the low-inventory and pricing reports"""

    def test_low_inventory_count(self, pipeline):
        result = pipeline.run("low_inventory_count")
        assert result.to_records() == [{"low_inventory_count": 2}]

    def test_pricing_competitiveness(self, pipeline):
        result = pipeline.run("pricing_competitiveness")

        assert [
            (r["category"], r["store_id"], r["avg_price"], r["avg_competitor_price"], r["price_position"])
            for r in result
        ] == [
            ("Groceries", "S002", Decimal("2.50"), Decimal("2.50"), "EQUAL"),
            ("Toys", "S001", Decimal("10.00"), Decimal("9.00"), "HIGHER"),
            ("Toys", "S006", Decimal("15.00"), None, None),
        ]


class TestFiltersAndErrors:
    """Tests for filters, unknown reports and empty input"""

    def test_unknown_report(self, pipeline):
        with pytest.raises(UnknownReportError) as exc_info:
            pipeline.run("revenue_by_planet")
        assert "store_revenue" in exc_info.value.available

    def test_unknown_report_via_module_function(self, sample_store):
        """Name is checked before the store is touched"""
        with pytest.raises(UnknownReportError):
            run_report("nope", store=sample_store)

    def test_year_range_filter(self, pipeline):
        result = pipeline.run("monthly_trend", {"year_from": 2024})
        assert [(r["year"], r["month"]) for r in result] == [(2024, 1)]

    def test_overriding_year_cutoff(self, pipeline):
        """year_before replaces the report's default cutoff"""
        result = pipeline.run("season_weather_revenue", ReportFilters(year_before=2030))
        assert sum(result.column("revenue")) == Decimal("145")

    @pytest.mark.parametrize("filters", [
        {"year_from": 2024, "year_before": 2024},
        {"store_ids": []},
        {"store_id": "S001"},
        {"year_from": "last year"},
        ["S001"],
    ])
    def test_malformed_filters(self, pipeline, filters):
        with pytest.raises(ReportFilterError):
            pipeline.run("store_revenue", filters)

    def test_filter_conflicting_with_default(self, pipeline):
        """year_from at or after the default cutoff is an empty range"""
        with pytest.raises(ReportFilterError):
            pipeline.run("season_weather_revenue", {"year_from": 2024})

    def test_empty_store(self, empty_store):
        """Grouped reports are empty, the count report is zero"""
        pipeline = ReportPipeline(empty_store)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", EmptyInputWarning)
            for name in pipeline.available():
                result = pipeline.run(name)
                if name == "low_inventory_count":
                    assert result.to_records() == [{"low_inventory_count": 0}]
                else:
                    assert len(result) == 0

    def test_empty_input_warns(self, pipeline):
        with pytest.warns(EmptyInputWarning):
            result = pipeline.run("store_revenue", {"store_ids": ["S999"]})
        assert len(result) == 0


class TestExecution:
    """Tests for determinism, concurrency and result export"""

    def test_all_reports_registered(self):
        assert set(available_reports()) == EXPECTED_REPORTS

    def test_runs_are_deterministic(self, pipeline):
        for name in pipeline.available():
            assert pipeline.run(name).rows == pipeline.run(name).rows

    def test_store_is_not_mutated(self, pipeline, sample_store):
        before = sample_store.facts
        pipeline.run_many()
        assert sample_store.facts == before

    def test_concurrent_matches_sequential(self, sample_store):
        concurrent = run_reports(store=sample_store, max_workers=4)
        pipeline = ReportPipeline(sample_store)

        assert set(concurrent) == EXPECTED_REPORTS
        for name, result in concurrent.items():
            assert result.rows == pipeline.run(name).rows

    def test_run_many_rejects_unknown_before_running(self, pipeline):
        with pytest.raises(UnknownReportError):
            pipeline.run_many(["store_revenue", "bogus"])

    def test_custom_definition_with_row_filter(self, sample_store):
        """Definitions can be supplied directly and restrict their input rows"""
        promoted = ReportDefinition(
            name="promoted_store_revenue",
            description="Revenue from promoted sales per store",
            group_by=("store_id",),
            measures={"revenue": REVENUE},
            row_filter=lambda row: row.promotion is not None,
            money_columns=("revenue",),
        )
        pipeline = ReportPipeline(sample_store, definitions={promoted.name: promoted})

        result = pipeline.run("promoted_store_revenue")

        assert pipeline.available() == ["promoted_store_revenue"]
        assert [(r["store_id"], r["revenue"]) for r in result] == [
            ("S001", Decimal("50")),
            ("S006", Decimal("30")),
        ]

    def test_unknown_dimension_rejected(self):
        with pytest.raises(ValueError):
            ReportDefinition(name="bad", description="", group_by=("planet",), measures={})

    def test_lookup_must_resolve_from_group_key(self):
        with pytest.raises(ValueError):
            ReportDefinition(
                name="bad",
                description="",
                group_by=("category",),
                measures={},
                lookups=(LookupColumn(output="name", key="promotion", resolve=lambda store, key: key),),
            )

    def test_to_polars(self, pipeline):
        df = pipeline.run("store_revenue").to_polars()

        assert isinstance(df, pl.DataFrame)
        assert df.columns == ["store_id", "units_sold", "revenue"]
        assert df["revenue"].to_list() == [80.0, 35.0, 30.0]


class TestSortTable:
    """Tests for sort_table"""

    def test_nulls_last_ascending_first_descending(self):
        rows = [{"k": 2}, {"k": None}, {"k": 1}]

        assert [r["k"] for r in sort_table(rows, [SortKey("k")])] == [1, 2, None]
        assert [r["k"] for r in sort_table(rows, [SortKey("k", descending=True)])] == [None, 2, 1]

    def test_ties_are_stable(self):
        rows = [{"k": 1, "id": "a"}, {"k": 0, "id": "b"}, {"k": 1, "id": "c"}]

        result = sort_table(rows, [SortKey("k", descending=True)])

        assert [r["id"] for r in result] == ["a", "c", "b"]

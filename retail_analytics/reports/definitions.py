"""
Report Definitions

Every report is a declarative composition of grouping dimensions, measures,
an optional window, an optional classification and a sort order. One
generic pipeline interprets them (see pipeline.py).
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from retail_analytics.config import ReportSettings, get_settings
from retail_analytics.engine import (
    AVERAGE_POSITION,
    PRICE_POSITION,
    Avg,
    Count,
    Labels,
    Measure,
    Sum,
    SumProduct,
    partition_average,
    trailing_average,
)
from retail_analytics.ingestion.models import FactRow
from retail_analytics.ingestion.store import RecordStore
from .results import ReportFilters, SortKey

Table = List[Dict[str, Any]]
Extractor = Callable[[RecordStore, FactRow], Any]


# =============================================================================
# DIMENSIONS
# =============================================================================

DIMENSIONS: Dict[str, Extractor] = {
    "store_id": lambda store, row: row.store_id,
    "category": lambda store, row: row.category,
    "weather": lambda store, row: row.weather,
    "year": lambda store, row: row.year,
    "month": lambda store, row: row.month,
    "region": lambda store, row: store.region(row.store_id),
    "season": lambda store, row: store.date_info(row.sale_date).seasonality,
    "epidemic": lambda store, row: store.date_info(row.sale_date).epidemic,
    "promotion": lambda store, row: row.promotion,
}


# =============================================================================
# MEASURES
# =============================================================================

UNITS_SOLD = Sum("units_sold")
REVENUE = SumProduct("price", "units_sold")


def _demand_exceeds_inventory(row: FactRow) -> bool:
    return row.demand > row.inventory_level


# =============================================================================
# WINDOWS AND CLASSIFICATION
# =============================================================================

@dataclass(frozen=True)
class TrailingWindow:
    """Trailing moving average over (year, month)-ordered rows"""
    measure: str
    output: str
    order_by: Tuple[str, ...] = ("year", "month")
    width: int = 3

    @property
    def outputs(self) -> Tuple[str, ...]:
        return (self.output,)

    def apply(self, table: Table, places: Optional[int]) -> Table:
        return trailing_average(table, self.order_by, self.measure, self.output, self.width, places)


@dataclass(frozen=True)
class PartitionWindow:
    """Partition average broadcast to every row, plus the row's deviation"""
    partition_by: Tuple[str, ...]
    measure: str
    avg_output: str
    diff_output: str

    @property
    def outputs(self) -> Tuple[str, ...]:
        return (self.avg_output, self.diff_output)

    def apply(self, table: Table, places: Optional[int]) -> Table:
        return partition_average(
            table, self.partition_by, self.measure, self.avg_output, self.diff_output, places
        )


@dataclass(frozen=True)
class Classification:
    """Label column from comparing two numeric columns"""
    left: str
    right: str
    output: str
    labels: Labels
    # Compare at this many decimals; None compares exact values
    places: Optional[int] = None


@dataclass(frozen=True)
class LookupColumn:
    """Display attribute resolved from a grouping key after aggregation"""
    output: str
    key: str
    resolve: Callable[[RecordStore, Any], Any]


def _promotion_name(store: RecordStore, promotion_id: Optional[str]) -> Optional[str]:
    return store.promotion_name(promotion_id)


# =============================================================================
# REPORT DEFINITION
# =============================================================================

@dataclass(frozen=True)
class ReportDefinition:
    """A fixed reporting query expressed as data"""
    name: str
    description: str
    group_by: Tuple[str, ...]
    measures: Mapping[str, Measure]
    sort: Tuple[SortKey, ...] = ()
    default_filters: ReportFilters = field(default_factory=ReportFilters)
    row_filter: Optional[Callable[[FactRow], bool]] = None
    lookups: Tuple[LookupColumn, ...] = ()
    window: Optional[Any] = None
    classification: Optional[Classification] = None
    money_columns: Tuple[str, ...] = ()
    month_label: bool = False

    def __post_init__(self):
        unknown = [d for d in self.group_by if d not in DIMENSIONS]
        if unknown:
            raise ValueError(f"Report '{self.name}' groups by unknown dimensions: {unknown}")
        stray = [lookup.key for lookup in self.lookups if lookup.key not in self.group_by]
        if stray:
            raise ValueError(f"Report '{self.name}' resolves lookups from non-key columns: {stray}")

    @property
    def is_global(self) -> bool:
        return not self.group_by

    @property
    def columns(self) -> Tuple[str, ...]:
        cols = list(self.group_by)
        cols.extend(lookup.output for lookup in self.lookups)
        if self.month_label:
            cols.append("month_label")
        cols.extend(self.measures)
        if self.window is not None:
            cols.extend(self.window.outputs)
        if self.classification is not None:
            cols.append(self.classification.output)
        return tuple(cols)

    def group_key_fn(self, store: RecordStore) -> Callable[[FactRow], Tuple[Any, ...]]:
        extractors = [DIMENSIONS[d] for d in self.group_by]
        return lambda row: tuple(extract(store, row) for extract in extractors)


def build_report_definitions(report_settings: Optional[ReportSettings] = None) -> Dict[str, ReportDefinition]:
    """
    The fixed battery of reports, keyed by identifier.

    Store subset and year cutoff defaults come from ReportSettings.
    """
    cfg = report_settings or get_settings().reports
    revenue_measures = {"units_sold": UNITS_SOLD, "revenue": REVENUE}
    by_revenue = (SortKey("revenue", descending=True),)
    by_month = (SortKey("year"), SortKey("month"))

    definitions = [
        ReportDefinition(
            name="store_revenue",
            description="Units sold and revenue per store",
            group_by=("store_id",),
            measures=revenue_measures,
            sort=by_revenue,
            money_columns=("revenue",),
        ),
        ReportDefinition(
            name="category_revenue",
            description="Units sold and revenue per product category",
            group_by=("category",),
            measures=revenue_measures,
            sort=by_revenue,
            money_columns=("revenue",),
        ),
        ReportDefinition(
            name="weather_store_revenue",
            description="Revenue per weather condition for the benchmark stores",
            group_by=("weather", "store_id"),
            measures=revenue_measures,
            sort=(SortKey("store_id"), SortKey("revenue", descending=True)),
            default_filters=ReportFilters(store_ids=list(cfg.benchmark_store_ids)),
            money_columns=("revenue",),
        ),
        ReportDefinition(
            name="category_season_revenue",
            description="Revenue per category and season",
            group_by=("category", "season"),
            measures=revenue_measures,
            sort=by_revenue,
            money_columns=("revenue",),
        ),
        ReportDefinition(
            name="monthly_trend",
            description="Units sold and revenue per calendar month",
            group_by=("year", "month"),
            measures=revenue_measures,
            sort=by_month,
            money_columns=("revenue",),
            month_label=True,
        ),
        ReportDefinition(
            name="monthly_moving_average",
            description="Monthly revenue with a trailing three-month moving average",
            group_by=("year", "month"),
            measures=revenue_measures,
            sort=by_month,
            window=TrailingWindow(measure="revenue", output="moving_avg_revenue"),
            money_columns=("revenue", "moving_avg_revenue"),
            month_label=True,
        ),
        ReportDefinition(
            name="category_monthly_benchmark",
            description="Monthly category income against the category's average month",
            group_by=("category", "year", "month"),
            measures={"monthly_income": REVENUE},
            sort=(SortKey("category"), SortKey("year"), SortKey("month")),
            window=PartitionWindow(
                partition_by=("category",),
                measure="monthly_income",
                avg_output="category_avg",
                diff_output="diff_from_avg",
            ),
            classification=Classification(
                left="monthly_income",
                right="category_avg",
                output="performance",
                labels=AVERAGE_POSITION,
            ),
            money_columns=("monthly_income", "category_avg", "diff_from_avg"),
            month_label=True,
        ),
        ReportDefinition(
            name="low_inventory_count",
            description="Number of observations where demand exceeded inventory",
            group_by=(),
            measures={"low_inventory_count": Count(_demand_exceeds_inventory)},
        ),
        ReportDefinition(
            name="category_promotion_revenue",
            description="Revenue per category and promotion",
            group_by=("category", "promotion"),
            measures={"revenue": REVENUE},
            lookups=(LookupColumn(output="promotion_name", key="promotion", resolve=_promotion_name),),
            sort=(SortKey("category"),),
            money_columns=("revenue",),
        ),
        ReportDefinition(
            name="pricing_competitiveness",
            description="Average own price against average competitor price per category and store",
            group_by=("category", "store_id"),
            measures={
                "avg_price": Avg("price"),
                "avg_competitor_price": Avg("competitor_price"),
            },
            sort=(SortKey("category"), SortKey("store_id")),
            classification=Classification(
                left="avg_price",
                right="avg_competitor_price",
                output="price_position",
                labels=PRICE_POSITION,
                places=cfg.display_places,
            ),
            money_columns=("avg_price", "avg_competitor_price"),
        ),
        ReportDefinition(
            name="season_weather_revenue",
            description=f"Revenue per season and weather before {cfg.year_cutoff}",
            group_by=("season", "weather"),
            measures={"revenue": REVENUE},
            sort=by_revenue,
            default_filters=ReportFilters(year_before=cfg.year_cutoff),
            money_columns=("revenue",),
        ),
        ReportDefinition(
            name="region_revenue",
            description="Units sold and revenue per store region",
            group_by=("region",),
            measures=revenue_measures,
            sort=by_revenue,
            money_columns=("revenue",),
        ),
        ReportDefinition(
            name="epidemic_revenue",
            description="Units sold and revenue on epidemic versus normal days",
            group_by=("epidemic",),
            measures=revenue_measures,
            sort=(SortKey("epidemic"),),
            money_columns=("revenue",),
        ),
    ]
    return {d.name: d for d in definitions}

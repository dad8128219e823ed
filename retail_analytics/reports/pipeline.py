"""
Report Pipeline

Interprets ReportDefinitions against a RecordStore:

    filter -> aggregate -> lookup -> window -> classify -> round -> sort

Reports are pure functions of the (read-only) store and their filters, so
several of them may run concurrently on a thread pool without locking.
"""

import warnings
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog

from retail_analytics.config import get_settings
from retail_analytics.engine import aggregate, classify_rows
from retail_analytics.engine.numeric import round_half_up
from retail_analytics.exceptions import EmptyInputWarning, UnknownReportError
from retail_analytics.ingestion.loader import load_store
from retail_analytics.ingestion.store import RecordStore
from .definitions import ReportDefinition, build_report_definitions
from .results import ReportFilters, ReportResult, sort_table

logger = structlog.get_logger(__name__)

FiltersLike = Union[ReportFilters, Mapping[str, Any], None]


def month_label(year: int, month: int) -> str:
    """Display label for a (year, month) key, e.g. Jan-23"""
    return date(year, month, 1).strftime("%b-%y")


class ReportPipeline:
    """
    Runs the registered reports over one RecordStore.

    Example:
        pipeline = ReportPipeline(store)
        result = pipeline.run("monthly_moving_average")
        for row in result:
            print(row["month_label"], row["moving_avg_revenue"])
    """

    def __init__(
        self,
        store: RecordStore,
        definitions: Optional[Mapping[str, ReportDefinition]] = None,
        display_places: Optional[int] = None,
    ):
        report_settings = get_settings().reports
        self.store = store
        self.definitions = dict(definitions or build_report_definitions(report_settings))
        self.display_places = (
            report_settings.display_places if display_places is None else display_places
        )

    def available(self) -> List[str]:
        return list(self.definitions)

    def definition(self, name: str) -> ReportDefinition:
        try:
            return self.definitions[name]
        except KeyError:
            raise UnknownReportError(name, self.available()) from None

    def run(self, name: str, filters: FiltersLike = None) -> ReportResult:
        """
        Evaluate one report.

        Args:
            name: Report identifier
            filters: Store subset / year range; set fields override the
                report's defaults

        Returns:
            ReportResult with rows in the report's sort order

        Raises:
            UnknownReportError: name is not registered
            ReportFilterError: filters are malformed
        """
        definition = self.definition(name)
        effective = definition.default_filters.merged_with(ReportFilters.coerce(filters))

        rows = [r for r in self.store.facts if effective.matches(r)]
        if definition.row_filter is not None:
            rows = [r for r in rows if definition.row_filter(r)]
        if not rows:
            logger.warning("Report evaluated over zero rows", report=name)
            warnings.warn(
                f"Report '{name}' matched no fact rows",
                EmptyInputWarning,
                stacklevel=2,
            )

        table = aggregate(
            rows,
            definition.group_key_fn(self.store),
            definition.measures,
            key_columns=definition.group_by,
        )

        for row in table:
            for lookup in definition.lookups:
                row[lookup.output] = lookup.resolve(self.store, row[lookup.key])

        # Windows and exact comparisons see unrounded values
        if definition.window is not None:
            table = definition.window.apply(table, places=None)

        if definition.classification is not None:
            rule = definition.classification
            table = classify_rows(table, rule.left, rule.right, rule.output, rule.labels, rule.places)

        if definition.month_label:
            for row in table:
                row["month_label"] = month_label(row["year"], row["month"])

        for row in table:
            for column in definition.money_columns:
                row[column] = round_half_up(row[column], self.display_places)

        table = sort_table(table, definition.sort)

        logger.info(
            "Report completed",
            report=name,
            input_rows=len(rows),
            output_rows=len(table),
        )
        return ReportResult(
            name=name,
            columns=definition.columns,
            rows=[{c: row[c] for c in definition.columns} for row in table],
            filters=effective,
        )

    def run_many(
        self,
        names: Optional[Iterable[str]] = None,
        filters: FiltersLike = None,
        max_workers: Optional[int] = None,
    ) -> Dict[str, ReportResult]:
        """
        Evaluate several reports concurrently.

        Unknown names fail before any report is started.
        """
        selected = list(names) if names is not None else self.available()
        for name in selected:
            self.definition(name)

        workers = max_workers or get_settings().reports.max_workers
        logger.info("Running reports", reports=len(selected), max_workers=workers)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {name: executor.submit(self.run, name, filters) for name in selected}
            return {name: future.result() for name, future in futures.items()}


@lru_cache()
def get_record_store() -> RecordStore:
    """Record store loaded once from REPORTS_DATA_PATH"""
    return load_store()


def _pipeline(store: Optional[RecordStore]) -> ReportPipeline:
    return ReportPipeline(store if store is not None else get_record_store())


def available_reports() -> List[str]:
    """Identifiers of every registered report"""
    return list(build_report_definitions())


def run_report(
    report_name: str,
    filters: FiltersLike = None,
    store: Optional[RecordStore] = None,
) -> ReportResult:
    """Run one report against `store` (default: the configured sales CSV)"""
    if report_name not in build_report_definitions():
        raise UnknownReportError(report_name, available_reports())
    return _pipeline(store).run(report_name, filters)


def run_reports(
    names: Optional[Iterable[str]] = None,
    filters: FiltersLike = None,
    store: Optional[RecordStore] = None,
    max_workers: Optional[int] = None,
) -> Dict[str, ReportResult]:
    """Run several reports concurrently; all of them when names is None"""
    return _pipeline(store).run_many(names, filters, max_workers)

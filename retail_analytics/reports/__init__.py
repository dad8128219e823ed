"""
Reporting Module
"""
from .definitions import ReportDefinition, build_report_definitions
from .pipeline import ReportPipeline, available_reports, get_record_store, run_report, run_reports
from .results import ReportFilters, ReportResult, SortKey

__all__ = [
    "ReportDefinition",
    "build_report_definitions",
    "ReportPipeline",
    "available_reports",
    "get_record_store",
    "run_report",
    "run_reports",
    "ReportFilters",
    "ReportResult",
    "SortKey",
]

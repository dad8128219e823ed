"""
Retail Sales Reporting Engine

Grouped rollups, trailing and partition-relative windows, and comparison
labels over a star-schema sales dataset.
"""
from .exceptions import (
    EmptyInputWarning,
    ReportFilterError,
    ReportingError,
    UnknownReportError,
    ValidationError,
)
from .reports import ReportFilters, ReportResult, available_reports, run_report, run_reports

__version__ = "1.0.0"

__all__ = [
    "EmptyInputWarning",
    "ReportFilterError",
    "ReportingError",
    "UnknownReportError",
    "ValidationError",
    "ReportFilters",
    "ReportResult",
    "available_reports",
    "run_report",
    "run_reports",
]

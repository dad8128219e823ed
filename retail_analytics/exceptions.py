"""
Reporting Engine Exceptions

Error taxonomy shared by the loader, the engine and the serving layer.
"""

from typing import Any, Dict, List, Optional


class ReportingError(Exception):
    """Base class for all reporting engine errors"""


class ValidationError(ReportingError):
    """
    A fact row or dimension value violates a load-time invariant.

    Raised while the record store is being built; the load is aborted.

    Attributes:
        row: Identifying fields of the offending row (sale_date, store_id, product_id)
        checks: Names of the failed checks
    """

    def __init__(
        self,
        message: str,
        row: Optional[Dict[str, Any]] = None,
        checks: Optional[List[str]] = None,
    ):
        self.row = row or {}
        self.checks = checks or []
        if self.row:
            ident = ", ".join(f"{k}={v}" for k, v in self.row.items())
            message = f"{message} [{ident}]"
        super().__init__(message)


class UnknownReportError(ReportingError, KeyError):
    """A report name outside the registered set was requested"""

    def __init__(self, name: str, available: List[str]):
        self.name = name
        self.available = available
        super().__init__(f"Unknown report '{name}'. Available: {', '.join(available)}")

    def __str__(self) -> str:
        return self.args[0]


class ReportFilterError(ReportingError, ValueError):
    """Report filters are malformed"""


class EmptyInputWarning(UserWarning):
    """A report was evaluated over zero matching rows"""

"""
Data Validation Module

Rule-based quality checks over raw sales DataFrames, run by the loader
before any fact row is built.

Features:
- Null checks
- Range/boundary checks
- Allowed-value checks
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import polars as pl
import structlog

from retail_analytics.config import get_settings
from retail_analytics.exceptions import ValidationError

logger = structlog.get_logger(__name__)

# raw column -> identifying field reported in ValidationError
IDENTITY_COLUMNS = {"date": "sale_date", "store_id": "store_id", "product_id": "product_id"}

# Accepted spellings of a boolean flag column, compared lower-cased
FLAG_TRUE_VALUES = ("1", "true", "yes", "y", "t")
FLAG_FALSE_VALUES = ("0", "false", "no", "n", "f")


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Critical - blocks the load
    WARNING = "warning"  # Non-critical - logged but continues
    INFO = "info"  # Informational only


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0
    first_failure: Optional[Dict[str, Any]] = None


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def errors(self) -> List[ValidationCheck]:
        """Failed checks that block the load"""
        return [
            c for c in self.checks
            if not c.passed and c.severity == ValidationSeverity.ERROR
        ]

    def raise_for_status(self) -> None:
        """
        Raise ValidationError if the suite failed.

        The error carries the identifying fields of the first offending row
        of the first failed check, and the names of every failed check.
        """
        if self.status != ValidationStatus.FAILED:
            return
        failures = self.errors
        first = failures[0]
        raise ValidationError(
            first.message,
            row=first.first_failure,
            checks=[c.name for c in failures],
        )


def _first_identity(df: pl.DataFrame) -> Optional[Dict[str, Any]]:
    if df.height == 0:
        return None
    cols = [c for c in IDENTITY_COLUMNS if c in df.columns]
    if not cols:
        return None
    first = df.select(cols).row(0, named=True)
    return {IDENTITY_COLUMNS[k]: (str(v) if v is not None else None) for k, v in first.items()}


class DataValidator:
    """
    Data validator with a chainable check suite.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("store_id")
        validator.add_range_check("price", min_value=0)
        result = validator.validate(df)
        result.raise_for_status()
    """

    def __init__(self):
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def reset(self) -> None:
        """Reset validator state"""
        self._checks = []

    @staticmethod
    def _missing_column(name: str, column: str, severity: ValidationSeverity) -> ValidationCheck:
        return ValidationCheck(
            name=name,
            passed=False,
            severity=severity,
            message=f"Column '{column}' not found",
        )

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"not_null_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            offending = df.filter(pl.col(column).is_null())
            null_count = offending.height
            total = len(df)
            passed = null_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {null_count} null values" if not passed else f"Column '{column}' has no null values",
                details={"null_count": null_count},
                failed_rows=null_count,
                total_rows=total,
                first_failure=_first_identity(offending),
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values within specified range (nulls are ignored)"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"range_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)

            if not conditions:
                return ValidationCheck(
                    name=name,
                    passed=True,
                    severity=severity,
                    message="No range specified",
                )

            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond

            offending = df.filter(combined)
            out_of_range = offending.height
            total = len(df)
            passed = out_of_range == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=total,
                first_failure=_first_identity(offending),
            )

        self._checks.append(check)
        return self

    def add_non_negative_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values >= 0"""
        return self.add_range_check(column, min_value=0, severity=severity)

    def add_enum_check(
        self,
        column: str,
        allowed_values: Sequence[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values in allowed set"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"enum_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            offending = df.filter(
                ~pl.col(column).is_in(list(allowed_values)) & pl.col(column).is_not_null()
            )
            invalid = offending.height
            passed = invalid == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {invalid} invalid values" if not passed else "All values are valid",
                details={"allowed_values": list(allowed_values), "invalid_count": invalid},
                failed_rows=invalid,
                total_rows=len(df),
                first_failure=_first_identity(offending),
            )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.now(timezone.utc)
        results = []

        logger.info(f"Running {len(self._checks)} validation checks on {len(df)} rows")

        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    message=result.message,
                    severity=result.severity.value,
                    first_failure=result.first_failure,
                )

        completed_at = datetime.now(timezone.utc)

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        status = ValidationStatus.FAILED if failed_checks > 0 else ValidationStatus.PASSED

        validation_result = ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=completed_at,
        )

        logger.info(
            f"Validation complete: {status.value}",
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return validation_result


def create_sales_validator(
    weather_conditions: Optional[Sequence[str]] = None,
    seasons: Optional[Sequence[str]] = None,
) -> DataValidator:
    """Create pre-configured validator for the flat sales CSV"""
    report_settings = get_settings().reports
    validator = DataValidator()
    for column in (
        "date", "store_id", "product_id", "category", "region", "weather", "seasonality",
        "inventory_level", "units_sold", "units_ordered", "demand", "price",
    ):
        validator.add_not_null_check(column)
    for column in ("inventory_level", "units_sold", "units_ordered", "demand", "price", "competitor_price"):
        validator.add_non_negative_check(column)
    return (
        validator
        .add_range_check("discount", min_value=0, max_value=100)
        .add_enum_check("weather", weather_conditions or report_settings.weather_conditions)
        .add_enum_check("seasonality", seasons or report_settings.seasons)
        .add_enum_check("epidemic", FLAG_TRUE_VALUES + FLAG_FALSE_VALUES)
    )

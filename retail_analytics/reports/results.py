"""
Report Filters and Result Tables
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import polars as pl
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from retail_analytics.exceptions import ReportFilterError
from retail_analytics.ingestion.models import FactRow


class ReportFilters(BaseModel):
    """
    Row restrictions applied before aggregation.

    year_from is inclusive, year_before is exclusive.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    store_ids: Optional[List[str]] = Field(default=None, min_length=1, description="Restrict to these stores")
    year_from: Optional[int] = Field(default=None, description="First sale year included")
    year_before: Optional[int] = Field(default=None, description="First sale year excluded")

    @classmethod
    def coerce(cls, value: Union["ReportFilters", Mapping[str, Any], None]) -> "ReportFilters":
        """Build filters from a mapping; malformed input raises ReportFilterError"""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise ReportFilterError(f"Filters must be a mapping, got {type(value).__name__}")
        try:
            return cls(**value)
        except PydanticValidationError as e:
            raise ReportFilterError(f"Invalid report filters: {e}") from e

    def merged_with(self, override: "ReportFilters") -> "ReportFilters":
        """Fields set on `override` replace this object's values"""
        merged = self.model_copy(update=override.model_dump(exclude_none=True))
        merged.check()
        return merged

    def check(self) -> None:
        if self.store_ids is not None and len(self.store_ids) == 0:
            raise ReportFilterError("store_ids must not be empty")
        if (
            self.year_from is not None
            and self.year_before is not None
            and self.year_from >= self.year_before
        ):
            raise ReportFilterError(
                f"Empty year range: year_from={self.year_from} >= year_before={self.year_before}"
            )

    def matches(self, row: FactRow) -> bool:
        if self.store_ids is not None and row.store_id not in self.store_ids:
            return False
        if self.year_from is not None and row.year < self.year_from:
            return False
        if self.year_before is not None and row.year >= self.year_before:
            return False
        return True


@dataclass(frozen=True)
class SortKey:
    """One ORDER BY term"""
    column: str
    descending: bool = False


def sort_table(rows: List[Dict[str, Any]], keys: Sequence[SortKey]) -> List[Dict[str, Any]]:
    """
    Stable multi-key sort.

    Nulls sort last ascending and first descending; full ties keep their
    input order.
    """
    ordered = list(rows)
    for key in reversed(keys):
        ordered.sort(key=lambda r, c=key.column: (r[c] is None, r[c]), reverse=key.descending)
    return ordered


@dataclass
class ReportResult:
    """Ordered table of named columns produced by one report run"""
    name: str
    columns: Tuple[str, ...]
    rows: List[Dict[str, Any]] = field(default_factory=list)
    filters: ReportFilters = field(default_factory=ReportFilters)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.rows)

    def column(self, name: str) -> List[Any]:
        return [row[name] for row in self.rows]

    def to_records(self) -> List[Dict[str, Any]]:
        """Copies of the rows with columns in declared order"""
        return [{c: row[c] for c in self.columns} for row in self.rows]

    def to_polars(self) -> pl.DataFrame:
        """Result as a Polars DataFrame (Decimals become Float64)"""
        data = {
            c: [float(v) if isinstance(v, Decimal) else v for v in self.column(c)]
            for c in self.columns
        }
        return pl.DataFrame(data)
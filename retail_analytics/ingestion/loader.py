"""
Sales CSV Loader

Batch ingestion of the flat sales extract into a RecordStore.
Supports:
- Schema-pinned CSV reads with Polars
- Column validation before any row is built
- Dimension de-duplication (first value wins, optional strict mode)
- Exact decimal parsing of monetary columns
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import polars as pl
import structlog

from retail_analytics.config import get_settings
from retail_analytics.exceptions import ValidationError
from retail_analytics.quality.validators import FLAG_TRUE_VALUES, create_sales_validator
from .models import DateInfo, FactRow
from .store import RecordStore

logger = structlog.get_logger(__name__)

StoreLookup = Dict[str, str]
DateLookup = Dict[date, DateInfo]
PromotionLookup = Dict[str, Optional[str]]

NULL_VALUES = ["", "NULL", "null", "None", "NA", "N/A"]
MONEY_COLUMNS = ("price", "discount", "competitor_price")

SALES_SCHEMA = {
    "date": pl.Utf8,
    "store_id": pl.Utf8,
    "product_id": pl.Utf8,
    "category": pl.Utf8,
    "region": pl.Utf8,
    "inventory_level": pl.Int64,
    "units_sold": pl.Int64,
    "units_ordered": pl.Int64,
    "demand": pl.Int64,
    "price": pl.Utf8,
    "discount": pl.Utf8,
    "weather": pl.Utf8,
    "promotion": pl.Utf8,
    "promotion_name": pl.Utf8,
    "competitor_price": pl.Utf8,
    "seasonality": pl.Utf8,
    "epidemic": pl.Utf8,
}


def _to_decimal(value: Optional[str], column: str, row: Dict[str, Any]) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        parsed = Decimal(value.strip())
    except InvalidOperation:
        parsed = None
    if parsed is None or not parsed.is_finite():
        raise ValidationError(
            f"Column '{column}' is not a finite decimal: {value!r}",
            row={"sale_date": str(row["date"]), "store_id": row["store_id"], "product_id": row["product_id"]},
            checks=[f"decimal_{column}"],
        )
    return parsed


class SalesCsvLoader:
    """
    Loads the flat sales CSV (one row per store/date/product) and splits it
    into fact rows and dimension lookups.

    Example:
        loader = SalesCsvLoader("data/sales.csv")
        store = loader.load_store()
    """

    def __init__(
        self,
        file_path: Optional[Union[str, Path]] = None,
        strict_dimensions: Optional[bool] = None,
        delimiter: str = ",",
        encoding: str = "utf-8",
    ):
        report_settings = get_settings().reports
        self.file_path = Path(file_path or report_settings.data_path)
        self.strict_dimensions = (
            report_settings.strict_dimensions if strict_dimensions is None else strict_dimensions
        )
        self.delimiter = delimiter
        self.encoding = encoding
        self._frame: Optional[pl.DataFrame] = None

    def _read_csv(self) -> pl.DataFrame:
        """Read CSV file with Polars, pinning the column types"""
        if not self.file_path.exists():
            raise FileNotFoundError(f"File not found: {self.file_path}")

        df = pl.read_csv(
            self.file_path,
            separator=self.delimiter,
            encoding=self.encoding,
            null_values=NULL_VALUES,
            schema_overrides=SALES_SCHEMA,
        )
        missing = [c for c in SALES_SCHEMA if c not in df.columns]
        if missing:
            raise ValidationError(f"Missing columns: {missing}", checks=["schema"])

        logger.info(f"Read {len(df)} rows from file", file=str(self.file_path))
        return df.with_columns(
            pl.col("date").str.strip_chars().str.to_date("%Y-%m-%d", strict=False),
            pl.col(["store_id", "product_id", "category", "region", "weather", "seasonality"]).str.strip_chars(),
        )

    def _validate(self, df: pl.DataFrame) -> None:
        """Run the column checks; monetary strings are cast to floats for bounds only"""
        checked = df.with_columns(
            pl.col(list(MONEY_COLUMNS)).str.strip_chars().cast(pl.Float64, strict=False),
            pl.col("epidemic").str.strip_chars().str.to_lowercase(),
        )
        create_sales_validator().validate(checked).raise_for_status()

    @property
    def frame(self) -> pl.DataFrame:
        """Validated raw frame, read once per loader"""
        if self._frame is None:
            df = self._read_csv()
            self._validate(df)
            self._frame = df
        return self._frame

    def _register(self, lookup: Dict[Any, Any], key: Any, value: Any, dimension: str) -> None:
        """Insert-distinct: keep the first value seen for a natural key"""
        if key not in lookup:
            lookup[key] = value
            return
        if lookup[key] == value:
            return
        if self.strict_dimensions:
            raise ValidationError(
                f"Conflicting {dimension} values for key {key!r}: {lookup[key]!r} != {value!r}",
                row={"key": str(key)},
                checks=[f"consistent_{dimension}"],
            )
        logger.warning(
            "Conflicting dimension value ignored",
            dimension=dimension,
            key=str(key),
            kept=str(lookup[key]),
            dropped=str(value),
        )

    def load_lookups(self) -> Tuple[StoreLookup, DateLookup, PromotionLookup]:
        """Build the store, date and promotion lookups in one pass"""
        stores: StoreLookup = {}
        dates: DateLookup = {}
        promotions: PromotionLookup = {}

        columns = ["date", "store_id", "region", "seasonality", "epidemic", "promotion", "promotion_name"]
        for row in self.frame.select(columns).iter_rows(named=True):
            self._register(stores, row["store_id"], row["region"], "store")
            epidemic = (row["epidemic"] or "").strip().lower() in FLAG_TRUE_VALUES
            self._register(dates, row["date"], DateInfo(row["seasonality"], epidemic), "date")
            if row["promotion"] is not None:
                self._register(promotions, row["promotion"].strip(), row["promotion_name"], "promotion")

        logger.info(
            "Dimension lookups built",
            stores=len(stores),
            dates=len(dates),
            promotions=len(promotions),
        )
        return stores, dates, promotions

    def load_facts(self) -> List[FactRow]:
        """Build fact rows in file order"""
        facts: List[FactRow] = []
        for row in self.frame.iter_rows(named=True):
            promotion = row["promotion"].strip() if row["promotion"] is not None else None
            facts.append(FactRow(
                sale_date=row["date"],
                store_id=row["store_id"],
                product_id=row["product_id"],
                category=row["category"],
                inventory_level=row["inventory_level"],
                units_sold=row["units_sold"],
                units_ordered=row["units_ordered"],
                price=_to_decimal(row["price"], "price", row),
                discount=_to_decimal(row["discount"], "discount", row) or Decimal(0),
                weather=row["weather"],
                promotion=promotion,
                demand=row["demand"],
                competitor_price=_to_decimal(row["competitor_price"], "competitor_price", row),
            ))
        return facts

    def load_store(self) -> RecordStore:
        """Load facts and lookups and build the validated RecordStore"""
        stores, dates, promotions = self.load_lookups()
        return RecordStore(self.load_facts(), stores=stores, dates=dates, promotions=promotions)


def load_facts(file_path: Optional[Union[str, Path]] = None) -> List[FactRow]:
    """Read fact rows from the sales CSV"""
    return SalesCsvLoader(file_path).load_facts()


def load_lookups(
    file_path: Optional[Union[str, Path]] = None,
    strict_dimensions: Optional[bool] = None,
) -> Tuple[StoreLookup, DateLookup, PromotionLookup]:
    """Read (store_lookup, date_lookup, promotion_lookup) from the sales CSV"""
    return SalesCsvLoader(file_path, strict_dimensions=strict_dimensions).load_lookups()


def load_store(
    file_path: Optional[Union[str, Path]] = None,
    strict_dimensions: Optional[bool] = None,
) -> RecordStore:
    """Read the sales CSV into a validated RecordStore"""
    return SalesCsvLoader(file_path, strict_dimensions=strict_dimensions).load_store()

"""
Record Store

Read-only container for the loaded fact rows and their dimension lookups.
Every invariant of the star schema is checked once, when the store is built;
reports afterwards read it without locking.
"""

from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from retail_analytics.config import get_settings
from retail_analytics.exceptions import ValidationError
from .models import DateInfo, FactRow

logger = structlog.get_logger(__name__)

_NON_NEGATIVE_INTS = ("inventory_level", "units_sold", "units_ordered", "demand")
_MAX_DISCOUNT = Decimal(100)


class RecordStore:
    """
    Ordered fact rows plus the store, date and promotion lookups.

    Example:
        store = RecordStore(facts, stores={"S001": "North"}, dates=..., promotions={})
        store.region("S001")
    """

    def __init__(
        self,
        facts: Iterable[FactRow],
        stores: Mapping[str, str],
        dates: Mapping[date, DateInfo],
        promotions: Mapping[str, Optional[str]],
        weather_conditions: Optional[Sequence[str]] = None,
        seasons: Optional[Sequence[str]] = None,
    ):
        report_settings = get_settings().reports
        self._weather = frozenset(weather_conditions or report_settings.weather_conditions)
        self._seasons = frozenset(seasons or report_settings.seasons)

        self._stores = MappingProxyType(dict(stores))
        self._dates = MappingProxyType(dict(dates))
        self._promotions = MappingProxyType(dict(promotions))

        self._validate_dates()
        rows = list(facts)
        for row in rows:
            self._validate_row(row)
        self._facts: Tuple[FactRow, ...] = tuple(rows)

        logger.info(
            "Record store built",
            facts=len(self._facts),
            stores=len(self._stores),
            dates=len(self._dates),
            promotions=len(self._promotions),
        )

    @classmethod
    def empty(cls) -> "RecordStore":
        """Store with no facts and no dimension entries"""
        return cls([], stores={}, dates={}, promotions={})

    def _validate_dates(self) -> None:
        for day, info in self._dates.items():
            if info.seasonality not in self._seasons:
                raise ValidationError(
                    f"Unknown seasonality '{info.seasonality}'",
                    row={"sale_date": day.isoformat()},
                    checks=["enum_seasonality"],
                )

    def _validate_row(self, row: FactRow) -> None:
        """Raise ValidationError for the first invariant the row breaks"""
        failed: List[str] = []

        for field_name in _NON_NEGATIVE_INTS:
            if getattr(row, field_name) < 0:
                failed.append(f"range_{field_name}")
        if not row.price.is_finite() or row.price < 0:
            failed.append("range_price")
        if row.competitor_price is not None and (
            not row.competitor_price.is_finite() or row.competitor_price < 0
        ):
            failed.append("range_competitor_price")
        if not row.discount.is_finite() or not (0 <= row.discount <= _MAX_DISCOUNT):
            failed.append("range_discount")
        if row.weather not in self._weather:
            failed.append("enum_weather")
        if failed:
            raise ValidationError("Fact row violates value bounds", row=row.identity(), checks=failed)

        if row.sale_date not in self._dates:
            failed.append("ref_integrity_sale_date")
        if row.store_id not in self._stores:
            failed.append("ref_integrity_store_id")
        if row.promotion is not None and row.promotion not in self._promotions:
            failed.append("ref_integrity_promotion")
        if failed:
            raise ValidationError("Unresolved dimension reference", row=row.identity(), checks=failed)

    @property
    def facts(self) -> Tuple[FactRow, ...]:
        return self._facts

    @property
    def stores(self) -> Mapping[str, str]:
        return self._stores

    @property
    def dates(self) -> Mapping[date, DateInfo]:
        return self._dates

    @property
    def promotions(self) -> Mapping[str, Optional[str]]:
        return self._promotions

    def region(self, store_id: str) -> str:
        return self._stores[store_id]

    def date_info(self, day: date) -> DateInfo:
        return self._dates[day]

    def promotion_name(self, promotion_id: Optional[str]) -> Optional[str]:
        """Display name of a promotion; None when the row had no promotion"""
        if promotion_id is None:
            return None
        return self._promotions[promotion_id]

    def __len__(self) -> int:
        return len(self._facts)

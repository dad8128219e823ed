"""
Test Suite Configuration
"""
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import pytest

from retail_analytics.ingestion.models import DateInfo, FactRow
from retail_analytics.ingestion.store import RecordStore


def _fact(**overrides: Any) -> FactRow:
    values: Dict[str, Any] = {
        "sale_date": date(2023, 1, 10),
        "store_id": "S001",
        "product_id": "P1",
        "category": "Toys",
        "inventory_level": 10,
        "units_sold": 1,
        "units_ordered": 0,
        "price": Decimal("1.00"),
        "discount": Decimal("0"),
        "weather": "Sunny",
        "promotion": None,
        "demand": 0,
        "competitor_price": None,
    }
    values.update(overrides)
    return FactRow(**values)


@pytest.fixture
def make_fact() -> Callable[..., FactRow]:
    """Factory for fact rows with neutral defaults"""
    return _fact


@pytest.fixture
def sample_facts() -> List[FactRow]:
    """
    Five observations across three stores, four dates and two categories.

    Revenue per row: 50, 25, 30, 30, 10 (total 145).
    """
    return [
        _fact(sale_date=date(2023, 1, 10), store_id="S001", product_id="P1", category="Toys",
              inventory_level=10, units_sold=5, price=Decimal("10.00"), competitor_price=Decimal("12.00"),
              weather="Sunny", promotion="PR1", demand=5),
        _fact(sale_date=date(2023, 1, 10), store_id="S002", product_id="P2", category="Groceries",
              inventory_level=10, units_sold=10, price=Decimal("2.50"), competitor_price=Decimal("2.50"),
              weather="Rainy", demand=12),
        _fact(sale_date=date(2023, 2, 10), store_id="S001", product_id="P1", category="Toys",
              inventory_level=8, units_sold=3, price=Decimal("10.00"), competitor_price=Decimal("6.00"),
              weather="Sunny", demand=8),
        _fact(sale_date=date(2023, 3, 10), store_id="S006", product_id="P3", category="Toys",
              inventory_level=20, units_sold=2, price=Decimal("15.00"), competitor_price=None,
              weather="Cloudy", promotion="PR2", demand=30),
        _fact(sale_date=date(2024, 1, 10), store_id="S002", product_id="P2", category="Groceries",
              inventory_level=5, units_sold=4, price=Decimal("2.50"), competitor_price=Decimal("2.50"),
              weather="Sunny", demand=4),
    ]


@pytest.fixture
def sample_lookups():
    """Store, date and promotion lookups matching sample_facts"""
    stores = {"S001": "North", "S002": "South", "S006": "East"}
    dates = {
        date(2023, 1, 10): DateInfo("Winter", False),
        date(2023, 2, 10): DateInfo("Winter", True),
        date(2023, 3, 10): DateInfo("Spring", False),
        date(2024, 1, 10): DateInfo("Winter", False),
    }
    promotions = {"PR1": "Spring Sale", "PR2": "Clearance"}
    return stores, dates, promotions


@pytest.fixture
def sample_store(sample_facts, sample_lookups) -> RecordStore:
    """Validated record store over the sample data"""
    stores, dates, promotions = sample_lookups
    return RecordStore(sample_facts, stores=stores, dates=dates, promotions=promotions)


@pytest.fixture
def empty_store() -> RecordStore:
    return RecordStore.empty()


def raw_sales_row(**overrides: Any) -> Dict[str, Optional[str]]:
    """One row of the flat sales CSV as text; None is written as an empty field"""
    row = {
        "date": "2023-01-10",
        "store_id": "S001",
        "product_id": "P1",
        "category": "Toys",
        "region": "North",
        "inventory_level": "10",
        "units_sold": "5",
        "units_ordered": "7",
        "demand": "5",
        "price": "10.00",
        "discount": "5",
        "weather": "Sunny",
        "promotion": None,
        "promotion_name": None,
        "competitor_price": "12.00",
        "seasonality": "Winter",
        "epidemic": "0",
    }
    row.update(overrides)
    return row


@pytest.fixture
def write_sales_csv(tmp_path) -> Callable[[List[Dict[str, str]]], str]:
    """Write raw sales rows to a CSV file and return its path"""
    def write(rows: List[Dict[str, str]]) -> str:
        path = tmp_path / "sales.csv"
        if rows:
            pl.DataFrame(rows).write_csv(path)
        else:
            path.write_text(",".join(raw_sales_row().keys()) + "\n")
        return str(path)
    return write


@pytest.fixture
def sample_csv(write_sales_csv) -> str:
    """Three valid CSV rows over two stores and two dates"""
    return write_sales_csv([
        raw_sales_row(),
        raw_sales_row(store_id="S002", region="South", product_id="P2", category="Groceries",
                      price="2.50", units_sold="10", promotion="PR1", promotion_name="Spring Sale",
                      competitor_price=None),
        raw_sales_row(date="2023-02-10", epidemic="1", units_sold="3", weather="Rainy"),
    ])


@pytest.fixture
def raw_row() -> Callable[..., Dict[str, Optional[str]]]:
    """Factory for raw CSV rows"""
    return raw_sales_row

"""
Sales Data Models

Fact row and dimension attribute types for the star-schema sales dataset.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DateInfo:
    """Date dimension attributes"""
    seasonality: str
    epidemic: bool


@dataclass(frozen=True)
class FactRow:
    """
    One sales observation: a store/date/product combination with its measures.

    Immutable once loaded. Monetary fields are exact decimals.
    """
    sale_date: date
    store_id: str
    product_id: str
    category: str
    inventory_level: int
    units_sold: int
    units_ordered: int
    price: Decimal
    discount: Decimal
    weather: str
    promotion: Optional[str]
    demand: int
    competitor_price: Optional[Decimal] = None

    @property
    def revenue(self) -> Decimal:
        """Gross revenue of the observation (price x units sold)"""
        return self.price * self.units_sold

    @property
    def year(self) -> int:
        return self.sale_date.year

    @property
    def month(self) -> int:
        return self.sale_date.month

    def identity(self) -> Dict[str, Any]:
        """Fields that identify the row in error messages"""
        return {
            "sale_date": self.sale_date.isoformat(),
            "store_id": self.store_id,
            "product_id": self.product_id,
        }

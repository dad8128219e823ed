"""
Aggregation and Window-Function Engine
"""
from .aggregator import Avg, Count, Measure, Sum, SumProduct, aggregate
from .classifier import AVERAGE_POSITION, PRICE_POSITION, Labels, classify, classify_rows
from .window import partition_average, trailing_average

__all__ = [
    "Avg",
    "Count",
    "Measure",
    "Sum",
    "SumProduct",
    "aggregate",
    "AVERAGE_POSITION",
    "PRICE_POSITION",
    "Labels",
    "classify",
    "classify_rows",
    "partition_average",
    "trailing_average",
]

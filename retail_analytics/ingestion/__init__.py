"""
Data Ingestion Module
"""
from .loader import SalesCsvLoader, load_facts, load_lookups, load_store
from .models import DateInfo, FactRow
from .store import RecordStore

__all__ = [
    "SalesCsvLoader",
    "load_facts",
    "load_lookups",
    "load_store",
    "DateInfo",
    "FactRow",
    "RecordStore",
]

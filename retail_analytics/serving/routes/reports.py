"""
Report API Endpoints

REST access to the fixed report battery.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
import structlog

from retail_analytics.ingestion.store import RecordStore
from retail_analytics.reports import ReportPipeline, build_report_definitions, get_record_store

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_store() -> RecordStore:
    """Dependency: the shared read-only record store"""
    return get_record_store()


def _jsonable(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: float(v) if isinstance(v, Decimal) else v for k, v in row.items()}


class ReportInfo(BaseModel):
    """Registered report"""
    name: str
    description: str
    columns: List[str]


class ReportResponse(BaseModel):
    """Report result table"""
    name: str
    columns: List[str]
    filters: Dict[str, Any]
    row_count: int
    rows: List[Dict[str, Any]]


@router.get("", response_model=List[ReportInfo])
async def list_reports() -> List[ReportInfo]:
    """List every registered report."""
    return [
        ReportInfo(name=d.name, description=d.description, columns=list(d.columns))
        for d in build_report_definitions().values()
    ]


@router.get("/{report_name}", response_model=ReportResponse)
def get_report(
    report_name: str,
    store_ids: Optional[List[str]] = Query(default=None, description="Restrict to these stores"),
    year_from: Optional[int] = Query(default=None, description="First sale year included"),
    year_before: Optional[int] = Query(default=None, description="First sale year excluded"),
    store: RecordStore = Depends(get_store),
) -> ReportResponse:
    """
    Run one report.

    Unknown report names return 404, malformed filters 422.
    """
    filters = {
        k: v for k, v in
        {"store_ids": store_ids, "year_from": year_from, "year_before": year_before}.items()
        if v is not None
    }
    logger.info("get_report called", report=report_name, filters=filters)

    result = ReportPipeline(store).run(report_name, filters)

    return ReportResponse(
        name=result.name,
        columns=list(result.columns),
        filters=result.filters.model_dump(exclude_none=True),
        row_count=len(result),
        rows=[_jsonable(row) for row in result.to_records()],
    )

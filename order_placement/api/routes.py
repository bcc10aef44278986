"""
API routes for order placement, lookups and reports.
"""
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.ext.asyncio import AsyncSession

from order_placement.core.order_service import OrderPlacementService
from order_placement.core.queries import TotalSpentQuery
from order_placement.database.connection import get_db
from order_placement.domain import MAX_ID
from order_placement.exceptions import OrderPlacementError
from order_placement.monitoring.health import HealthCheck
from order_placement.monitoring.metrics import metrics
from order_placement.repositories.reports import ReportRepository

from .schemas import (
    CategoryTotalRow,
    ErrorResponse,
    HealthCheckResponse,
    MonthlySalesRow,
    OrderResponse,
    OrderSequenceRow,
    PlaceOrderRequest,
    RankedProductRow,
    TopCustomerRow,
    TotalSpentResponse,
)

logger = structlog.get_logger(__name__)

# Create routers
order_router = APIRouter(prefix="/orders", tags=["orders"])
customer_router = APIRouter(prefix="/customers", tags=["customers"])
report_router = APIRouter(prefix="/reports", tags=["reports"])
monitoring_router = APIRouter(tags=["monitoring"])

ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}

# Initialize services
_order_service = OrderPlacementService()
_total_spent_query = TotalSpentQuery()
health_check = HealthCheck()


def get_order_service() -> OrderPlacementService:
    """Dependency returning the order placement service."""
    return _order_service


def get_total_spent_query() -> TotalSpentQuery:
    """Dependency returning the total spent query."""
    return _total_spent_query


def get_health_check() -> HealthCheck:
    """Dependency returning the health check service."""
    return health_check


async def get_report_repository(db: AsyncSession = Depends(get_db)) -> ReportRepository:
    """Dependency returning a report repository bound to a request session."""
    return ReportRepository(db)


@order_router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Place an order",
    description="Validate stock, create the order and its lines, and deduct stock atomically",
)
async def place_order(
    request: PlaceOrderRequest,
    service: OrderPlacementService = Depends(get_order_service),
) -> Dict[str, Any]:
    """
    Place an order.

    Either the whole basket is placed or nothing is written.
    """
    logger.info(
        "api_place_order_request",
        customer_id=request.customer_id,
        items=len(request.items),
    )

    try:
        placed = await service.place_order_detailed(
            request.customer_id,
            [item.model_dump() for item in request.items],
        )
    except OrderPlacementError as e:
        logger.warning("api_place_order_failed", error_code=e.error_code, error=e.message)
        raise

    return placed.model_dump()


@order_router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Get an order",
    description="Retrieve an order with its lines",
)
async def get_order(
    order_id: int = Path(..., ge=1, le=MAX_ID),
    service: OrderPlacementService = Depends(get_order_service),
) -> Dict[str, Any]:
    """Get an order by ID."""
    placed = await service.get_order(order_id)
    return placed.model_dump()


@customer_router.get(
    "/{customer_id}/total-spent",
    response_model=TotalSpentResponse,
    summary="Total spent by a customer",
    description="Sum of all order totals for the customer; 0.00 when there are none",
)
async def get_total_spent(
    customer_id: int = Path(..., ge=1, le=MAX_ID),
    query: TotalSpentQuery = Depends(get_total_spent_query),
) -> Dict[str, Any]:
    """Get total amount spent by a customer."""
    total = await query.get_total_spent(customer_id)
    return {"customer_id": customer_id, "total_spent": total}


async def _timed_report(
    report: str, run: Callable[[], Awaitable[List[Dict[str, Any]]]]
) -> List[Dict[str, Any]]:
    start_time = time.perf_counter()
    rows = await run()
    duration = time.perf_counter() - start_time
    metrics.record_report_query(report, duration)
    logger.info("api_report_served", report=report, rows=len(rows), duration_seconds=duration)
    return rows


@report_router.get(
    "/top-customers",
    response_model=List[TopCustomerRow],
    summary="Top customers by spend",
)
async def top_customers(
    limit: int = Query(default=5, ge=1, le=100),
    reports: ReportRepository = Depends(get_report_repository),
) -> List[Dict[str, Any]]:
    """Customers ranked by total spend."""
    return await _timed_report("top_customers", lambda: reports.top_customers(limit))


@report_router.get(
    "/monthly-sales",
    response_model=List[MonthlySalesRow],
    summary="Monthly revenue per category",
)
async def monthly_sales(
    year: int = Query(..., ge=1970, le=9999),
    reports: ReportRepository = Depends(get_report_repository),
) -> List[Dict[str, Any]]:
    """Revenue per category pivoted into month columns."""
    return await _timed_report("monthly_sales", lambda: reports.monthly_sales(year))


@report_router.get(
    "/second-highest-priced",
    response_model=List[RankedProductRow],
    summary="Second highest priced product per category",
)
async def second_highest_priced(
    reports: ReportRepository = Depends(get_report_repository),
) -> List[Dict[str, Any]]:
    """Products ranked second by price within their category."""
    return await _timed_report(
        "second_highest_priced", reports.second_highest_priced_products
    )


@report_router.get(
    "/order-sequences",
    response_model=List[OrderSequenceRow],
    summary="Orders with previous and next amounts",
)
async def order_sequences(
    customer_id: Optional[int] = Query(default=None, ge=1, le=MAX_ID),
    reports: ReportRepository = Depends(get_report_repository),
) -> List[Dict[str, Any]]:
    """Orders annotated with the neighbouring order amounts per customer."""
    return await _timed_report("order_sequences", lambda: reports.order_sequences(customer_id))


@report_router.get(
    "/category-totals",
    response_model=List[CategoryTotalRow],
    summary="Revenue per category with grand total",
)
async def category_totals(
    reports: ReportRepository = Depends(get_report_repository),
) -> List[Dict[str, Any]]:
    """Revenue grouped by category followed by a grand total row."""
    return await _timed_report("category_totals", reports.category_totals)


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Check overall system health",
)
async def health(checker: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return await checker.check_all()


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness check",
)
async def liveness(checker: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Liveness check endpoint."""
    return await checker.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness check",
)
async def readiness(checker: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Readiness check endpoint."""
    result = await checker.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

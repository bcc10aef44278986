"""
Prometheus metrics for order placement monitoring.

Tracks:
- Placement counts by outcome
- Placement duration
- Placed order amounts
- Retries after serialization conflicts
- Stock rejections per product
"""
from decimal import Decimal

from prometheus_client import Counter, Histogram

# Placement metrics
order_placements_total = Counter(
    "order_placements_total",
    "Total number of order placement calls",
    ["outcome"],  # placed, not_found, invalid_argument, insufficient_stock, retryable, fatal
)

order_placement_duration_seconds = Histogram(
    "order_placement_duration_seconds",
    "Order placement duration in seconds, retries included",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

order_total_amount = Histogram(
    "order_total_amount",
    "Totals of placed orders",
    buckets=(10, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 50000),
)

order_lines_per_order = Histogram(
    "order_lines_per_order",
    "Number of lines in placed orders",
    buckets=(1, 2, 3, 5, 10, 20, 50),
)

# Conflict metrics
order_placement_retries_total = Counter(
    "order_placement_retries_total",
    "Placement attempts re-run after a transaction conflict",
)

stock_rejections_total = Counter(
    "stock_rejections_total",
    "Basket entries rejected for insufficient stock",
)

# Reporting metrics
report_query_duration_seconds = Histogram(
    "report_query_duration_seconds",
    "Reporting query duration in seconds",
    ["report"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_placement(outcome: str, duration_seconds: float) -> None:
        """Record a finished placement call."""
        order_placements_total.labels(outcome=outcome).inc()
        order_placement_duration_seconds.observe(duration_seconds)

    @staticmethod
    def record_order_placed(total: Decimal, line_count: int) -> None:
        """Record the shape of a placed order."""
        order_total_amount.observe(float(total))
        order_lines_per_order.observe(line_count)

    @staticmethod
    def record_retry() -> None:
        """Record a placement retry."""
        order_placement_retries_total.inc()

    @staticmethod
    def record_stock_rejection() -> None:
        """Record an insufficient stock rejection."""
        stock_rejections_total.inc()

    @staticmethod
    def record_report_query(report: str, duration_seconds: float) -> None:
        """Record reporting query duration."""
        report_query_duration_seconds.labels(report=report).observe(duration_seconds)


# Export singleton instance
metrics = MetricsCollector()

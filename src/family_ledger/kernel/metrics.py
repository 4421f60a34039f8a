"""
Prometheus metrics collection for Family Ledger.

Provides observability into service operations, rejected mutations,
best-effort side effects and store traffic.
"""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Gauge, Histogram, start_http_server

# ============================================================================
# Service Operation Metrics
# ============================================================================

operation_duration_seconds = Histogram(
    "family_ledger_operation_duration_seconds",
    "Duration of service operations in seconds",
    ["service", "operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

operations_total = Counter(
    "family_ledger_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],  # status: success, rejected, failure
)

rejections_total = Counter(
    "family_ledger_rejections_total",
    "Total number of operations rejected with a typed error",
    ["code"],
)

side_effect_failures_total = Counter(
    "family_ledger_side_effect_failures_total",
    "Total number of best-effort side effects that failed after a primary write",
    ["side_effect"],
)

# ============================================================================
# Store Metrics
# ============================================================================

store_writes_total = Counter(
    "family_ledger_store_writes_total",
    "Total number of rows written to the ledger store",
    ["table", "operation"],  # operation: insert, update, delete
)

# ============================================================================
# Financial Health Metrics
# ============================================================================

health_score_last = Gauge(
    "family_ledger_health_score_last",
    "Most recently calculated financial health score (0-100)",
)

# ============================================================================
# Helper Functions
# ============================================================================

P = ParamSpec("P")
R = TypeVar("R")


def track_operation(
    service: str, operation: str
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """
    Decorator to track duration and outcome of an async service operation.

    Errors with a status below 500 (validation, not found, unauthorized)
    are counted as "rejected", everything else as "failure".

    Args:
        service: Service name (e.g., "expense")
        operation: Operation name (e.g., "create")

    Returns:
        Decorated coroutine function
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if getattr(e, "status_code", 500) < 500:
                    status = "rejected"
                    rejections_total.labels(
                        code=getattr(e, "code", type(e).__name__)
                    ).inc()
                else:
                    status = "failure"
                raise
            finally:
                operation_duration_seconds.labels(
                    service=service, operation=operation
                ).observe(time.perf_counter() - start)
                operations_total.labels(
                    service=service, operation=operation, status=status
                ).inc()

        return wrapper

    return decorator


def start_metrics_server(port: int = 9090) -> None:
    """
    Start Prometheus metrics HTTP server.

    Args:
        port: Port to listen on (default: 9090)
    """
    start_http_server(port)

"""
Monitoring and metrics for the booking engine
"""

import time
import logging
from typing import Dict, Any
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from prometheus_client import Counter, Histogram
from sqlalchemy import text

from cinebook.core.exceptions import BookingEngineError

logger = logging.getLogger(__name__)

BOOKING_OPERATIONS = Counter(
    "cinebook_booking_operations_total",
    "Booking engine operations by outcome",
    ["operation", "outcome"]
)
BOOKING_OPERATION_DURATION = Histogram(
    "cinebook_booking_operation_duration_seconds",
    "Booking engine operation duration",
    ["operation"]
)
BOOKING_TRANSITIONS = Counter(
    "cinebook_booking_transitions_total",
    "Booking status transitions",
    ["to_status"]
)
RECLAIMED_BOOKINGS = Counter(
    "cinebook_reclaimed_bookings_total",
    "Pending bookings expired by the reclaimer"
)


class MetricsCollector:
    """Prometheus-backed metrics collector for booking operations"""

    def __init__(self, slow_operation_seconds: float = 5.0):
        self.slow_operation_seconds = slow_operation_seconds
        self.logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def track_booking_operation(self, operation_type: str = "reserve"):
        """Context manager to track operation outcome and latency"""
        start_time = time.perf_counter()
        try:
            yield
        except BookingEngineError as e:
            # Business outcomes are labelled by their code, not counted as failures
            BOOKING_OPERATIONS.labels(operation=operation_type, outcome=e.code.lower()).inc()
            raise
        except Exception as e:
            BOOKING_OPERATIONS.labels(operation=operation_type, outcome="error").inc()
            self.logger.error(f"Failed {operation_type} operation: {type(e).__name__}: {e}")
            raise
        else:
            BOOKING_OPERATIONS.labels(operation=operation_type, outcome="success").inc()
        finally:
            duration = time.perf_counter() - start_time
            BOOKING_OPERATION_DURATION.labels(operation=operation_type).observe(duration)
            if duration > self.slow_operation_seconds:
                self.logger.warning(f"Slow {operation_type} operation: {duration:.2f}s")

    def record_booking_status_change(self, to_status: str):
        BOOKING_TRANSITIONS.labels(to_status=to_status).inc()

    def record_reclaimed(self, count: int):
        if count:
            RECLAIMED_BOOKINGS.inc(count)


class HealthChecker:
    """Health checking for the database the engine depends on"""

    def __init__(self, db_manager):
        self.db_manager = db_manager

    async def check_database_health(self) -> Dict[str, Any]:
        try:
            start_time = time.perf_counter()
            async with self.db_manager.session_factory() as session:
                await session.execute(text("SELECT 1"))
            response_time = time.perf_counter() - start_time

            return {
                "status": "healthy",
                "response_time_ms": response_time * 1000,
                "error": None
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "response_time_ms": None,
                "error": str(e)
            }

    async def get_system_health(self) -> Dict[str, Any]:
        db_health = await self.check_database_health()
        return {
            "status": db_health["status"],
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {"database": db_health}
        }


# Global instances
metrics_collector = MetricsCollector()

"""
Metrics instrumentation (Prometheus client).
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        """Initialize metrics registry."""
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        """Create a counter metric."""
        return Counter(name, description, labels or [])

    def _create_histogram(self, name, description, labels=None, buckets=None):
        """Create a histogram metric."""
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets)
        return Histogram(name, description, labels or [])

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP / generic
        # ===================================================================
        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Returns Metrics
        # ===================================================================
        self.returns_created_total = self._create_counter(
            'returns_created_total',
            'Returns created',
            ['kind', 'result']  # result: success|validation_error|idempotent
        )

        self.returns_transition_total = self._create_counter(
            'returns_transition_total',
            'Return status transitions',
            ['kind', 'to_status', 'result']  # result: success|already_decided|storage_error
        )

        self.returns_approve_duration_seconds = self._create_histogram(
            'returns_approve_duration_seconds',
            'Duration of the return approval transaction',
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
        )

        self.returns_over_return_attempts_total = self._create_counter(
            'returns_over_return_attempts_total',
            'Blocked attempts to return more than the remaining returnable quantity',
            ['kind']
        )

        self.returns_storage_failures_total = self._create_counter(
            'returns_storage_failures_total',
            'Return transactions that could not commit',
            ['operation']
        )

        # ===================================================================
        # Stock Metrics
        # ===================================================================
        self.inventory_movements_total = self._create_counter(
            'inventory_movements_total',
            'Inventory ledger rows appended',
            ['movement_type']
        )

        self.stock_clamped_at_zero_total = self._create_counter(
            'stock_clamped_at_zero_total',
            'Stock decrements clamped at the zero floor',
            ['movement_type']
        )

        # ===================================================================
        # Financial Note Metrics
        # ===================================================================
        self.financial_notes_total = self._create_counter(
            'financial_notes_total',
            'Financial notes by type and action',
            ['note_type', 'action']  # action: issued|applied|cancelled
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.returns_approve_duration_seconds)
            def approve_return(...):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()

"""Prometheus metrics definitions for UploadGate.

All custom metrics use the ``uploadgate_`` prefix. These are
*application-level* upload metrics; the ``prometheus-fastapi-instrumentator``
package provides the HTTP-level metrics (request count, duration, sizes).

Counters reset to zero on restart.
"""

from __future__ import annotations

from prometheus_client import Counter

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

# ---------------------------------------------------------------------------
# Upload operation counter  (labels: operation, status)
# ---------------------------------------------------------------------------
upload_operations_total: Counter | None = None

# ---------------------------------------------------------------------------
# Compensating abort counter  (labels: outcome)
# ---------------------------------------------------------------------------
compensating_aborts_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    This must be called once when metrics are enabled. When metrics are
    disabled in config the module-level references stay ``None`` and no
    collectors are registered in the global registry.
    """
    global _initialized
    global upload_operations_total, compensating_aborts_total

    if _initialized:
        return

    upload_operations_total = Counter(
        "uploadgate_upload_operations_total",
        "Total upload coordination operations by type and outcome",
        ["operation", "status"],
    )

    compensating_aborts_total = Counter(
        "uploadgate_compensating_aborts_total",
        "Compensating multipart aborts issued after failed completions",
        ["outcome"],
    )

    _initialized = True


def record_operation(operation: str, status: str) -> None:
    """Count one upload operation. No-op while metrics are disabled."""
    if upload_operations_total is not None:
        upload_operations_total.labels(operation=operation, status=status).inc()


def record_abort(outcome: str) -> None:
    """Count one compensating abort. No-op while metrics are disabled."""
    if compensating_aborts_total is not None:
        compensating_aborts_total.labels(outcome=outcome).inc()

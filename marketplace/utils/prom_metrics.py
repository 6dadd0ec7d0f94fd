"""
Prometheus metrics registration and helpers.

Exports:
- observe_request(...): record HTTP request metrics
- observe_payment_completion(...): record 3-D Secure completion outcomes
- observe_invoice_generation(...): record invoice generation outcomes
- metrics_latest(): return text exposition from correct registry (handles multiprocess)
- CONTENT_TYPE_LATEST: correct Prometheus content type
"""

import os
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess


REQUEST_COUNTER = Counter(
    'mp_http_requests_total', 'Total HTTP requests', ['endpoint', 'status']
)

REQUEST_LATENCY = Histogram(
    'mp_http_request_latency_seconds', 'HTTP request latency seconds', ['endpoint']
)

PAYMENT_COMPLETIONS = Counter(
    'mp_payment_completions_total', 'Payment completion callbacks by result', ['result']
)

INVOICES_GENERATED = Counter(
    'mp_invoices_generated_total', 'Invoice generation requests by result', ['result']
)


def observe_request(endpoint: str, status: int, latency_seconds: float) -> None:
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency_seconds)


def observe_payment_completion(result: str) -> None:
    PAYMENT_COMPLETIONS.labels(result=result).inc()


def observe_invoice_generation(result: str) -> None:
    INVOICES_GENERATED.labels(result=result).inc()


def metrics_latest() -> bytes:
    """Return the Prometheus text exposition, multiprocess-aware if configured."""
    prom_mp_dir = os.getenv('PROMETHEUS_MULTIPROC_DIR')
    if prom_mp_dir:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    # Default registry
    return generate_latest()


__all__ = [
    'observe_request',
    'observe_payment_completion',
    'observe_invoice_generation',
    'metrics_latest',
    'CONTENT_TYPE_LATEST',
]

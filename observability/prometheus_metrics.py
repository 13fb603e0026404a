"""Prometheus metrics for the decision record service."""

from prometheus_client import Counter, Histogram, Gauge, Info, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import CollectorRegistry
from fastapi import FastAPI, Request, Response
import re
import time
from typing import Optional, Dict, Any
import logging
import psutil
import os

logger = logging.getLogger(__name__)

decisiondocs_registry = CollectorRegistry()

# Request metrics
request_count = Counter(
    'decisiondocs_http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=decisiondocs_registry
)

request_duration = Histogram(
    'decisiondocs_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=decisiondocs_registry
)

# Search metrics
search_requests = Counter(
    'decisiondocs_search_requests_total',
    'Total number of search requests',
    ['status'],
    registry=decisiondocs_registry
)

search_duration = Histogram(
    'decisiondocs_search_duration_seconds',
    'Search evaluation time in seconds',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0],
    registry=decisiondocs_registry
)

search_results_count = Histogram(
    'decisiondocs_search_results_count',
    'Number of documents matched per search',
    buckets=[0, 1, 5, 10, 25, 50, 100, 250],
    registry=decisiondocs_registry
)

# Corpus and index metrics
corpus_records = Gauge(
    'decisiondocs_corpus_records',
    'Records in the loaded corpus snapshot',
    ['state'],
    registry=decisiondocs_registry
)

index_build_duration = Histogram(
    'decisiondocs_index_build_duration_seconds',
    'Corpus load and index build duration in seconds',
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
    registry=decisiondocs_registry
)

indexed_documents = Gauge(
    'decisiondocs_indexed_documents',
    'Documents held by the search index',
    registry=decisiondocs_registry
)

# System metrics
system_memory_usage = Gauge(
    'decisiondocs_system_memory_usage_bytes',
    'Resident memory of the server process in bytes',
    registry=decisiondocs_registry
)

system_cpu_usage = Gauge(
    'decisiondocs_system_cpu_usage_percent',
    'System CPU usage percentage',
    registry=decisiondocs_registry
)

app_info = Info(
    'decisiondocs_app_info',
    'Decision record service information',
    registry=decisiondocs_registry
)

error_count = Counter(
    'decisiondocs_errors_total',
    'Total number of errors',
    ['error_type', 'component'],
    registry=decisiondocs_registry
)


class PrometheusMiddleware:
    """Middleware to collect Prometheus metrics for HTTP requests."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        method = request.method
        endpoint = self._normalize_endpoint(request.url.path)

        start_time = time.time()
        status_code = 500  # Default to error

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            logger.error(f"Request processing error: {e}")
            error_count.labels(error_type=type(e).__name__, component="http").inc()
            raise
        finally:
            duration = time.time() - start_time
            request_count.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
            request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def _normalize_endpoint(self, path: str) -> str:
        """Collapse record paths so each record does not get its own series."""
        if path in ('/', '/search', '/health', '/health/detailed', '/metrics', '/favicon.ico'):
            return path
        return re.sub(r'^/[^/]+$', '/{item}', path)


def setup_prometheus_metrics(app: FastAPI) -> None:
    """Setup Prometheus metrics collection for FastAPI app."""
    app.add_middleware(PrometheusMiddleware)

    @app.get("/metrics", include_in_schema=False)
    async def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return Response(generate_latest(decisiondocs_registry), media_type=CONTENT_TYPE_LATEST)

    app_info.info({
        'version': os.getenv('APP_VERSION', 'unknown'),
        'environment': os.getenv('ENVIRONMENT', 'development')
    })

    logger.info("Prometheus metrics configured")


def record_search_metrics(duration: float, result_count: int, error: Optional[str] = None) -> None:
    """Record search-related metrics."""
    status = "error" if error else "success"
    search_requests.labels(status=status).inc()

    if error:
        error_count.labels(error_type=error, component="search").inc()
        return

    search_duration.observe(duration)
    search_results_count.observe(result_count)


def record_corpus_metrics(loaded: int, skipped: int, indexed: int, duration: float) -> None:
    """Record the outcome of the startup load and index build."""
    corpus_records.labels(state="loaded").set(loaded)
    corpus_records.labels(state="skipped").set(skipped)
    indexed_documents.set(indexed)
    index_build_duration.observe(duration)

    if skipped:
        error_count.labels(error_type="record_load_error", component="corpus").inc(skipped)


def update_system_metrics() -> Dict[str, Any]:
    """Refresh system gauges and return their values."""
    try:
        memory = psutil.Process(os.getpid()).memory_info().rss
        cpu_percent = psutil.cpu_percent(interval=None)
    except psutil.Error as e:
        logger.error(f"Error updating system metrics: {e}")
        error_count.labels(error_type="system_metrics_error", component="monitoring").inc()
        return {}

    system_memory_usage.set(memory)
    system_cpu_usage.set(cpu_percent)
    return {"memory_rss_bytes": memory, "cpu_percent": cpu_percent}

"""Observability package for the decision record service."""

from .logging import setup_logging, get_logger, log_performance
from .prometheus_metrics import (
    setup_prometheus_metrics,
    record_search_metrics,
    record_corpus_metrics,
    update_system_metrics,
    PrometheusMiddleware,
    decisiondocs_registry
)

__all__ = [
    'setup_logging',
    'get_logger',
    'log_performance',
    'setup_prometheus_metrics',
    'record_search_metrics',
    'record_corpus_metrics',
    'update_system_metrics',
    'PrometheusMiddleware',
    'decisiondocs_registry'
]

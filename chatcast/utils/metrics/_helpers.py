"""
Helper functions for Prometheus metric registration.

Importing a metrics module twice (uvicorn --reload, test collection) would
otherwise fail with a duplicate registration error, so existing collectors
are looked up in the default registry instead.
"""

from typing import Any, TypeVar

from prometheus_client import REGISTRY, Counter, Gauge, Histogram

MetricT = TypeVar("MetricT", Counter, Gauge, Histogram)


def _get_or_create(
    metric_cls: type[MetricT],
    name: str,
    doc: str,
    labels: list[str] | None = None,
    **kwargs: Any,
) -> MetricT:
    try:
        return metric_cls(name, doc, labels or [], **kwargs)
    except ValueError:
        # Already registered under this name
        return REGISTRY._names_to_collectors[name]


def _get_or_create_counter(
    name: str, doc: str, labels: list[str] | None = None
) -> Counter:
    """Get existing counter or create new one."""
    return _get_or_create(Counter, name, doc, labels)


def _get_or_create_gauge(
    name: str, doc: str, labels: list[str] | None = None
) -> Gauge:
    """Get existing gauge or create new one."""
    return _get_or_create(Gauge, name, doc, labels)


def _get_or_create_histogram(
    name: str,
    doc: str,
    labels: list[str] | None = None,
    buckets: tuple[float, ...] | None = None,
) -> Histogram:
    """Get existing histogram or create new one, with optional buckets."""
    if buckets:
        return _get_or_create(Histogram, name, doc, labels, buckets=buckets)
    return _get_or_create(Histogram, name, doc, labels)

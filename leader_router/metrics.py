"""Prometheus metrics"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client import CollectorRegistry
import time

# Create registry
registry = CollectorRegistry()

# Routing metrics
routing_requests_total = Counter(
    'routing_requests_total',
    'Total routing invocations',
    ['status'],
    registry=registry
)

routing_stage_failures_total = Counter(
    'routing_stage_failures_total',
    'Routing invocations aborted, by failing stage',
    ['stage'],
    registry=registry
)

routing_duration = Histogram(
    'routing_duration_seconds',
    'Routing invocation latency',
    registry=registry
)

routing_region_total = Counter(
    'routing_region_total',
    'Routing results by selected region',
    ['region'],
    registry=registry
)

# Geo table metrics
geo_table_records = Gauge(
    'geo_table_records',
    'Number of records in the loaded leader geo table',
    registry=registry
)

# Helper class for timing
class Timer:
    def __init__(self):
        self.start_time = None
        self.duration = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.duration = time.perf_counter() - self.start_time

def get_metrics():
    """Get Prometheus metrics"""
    return generate_latest(registry)

def get_content_type():
    """Get metrics content type"""
    return CONTENT_TYPE_LATEST

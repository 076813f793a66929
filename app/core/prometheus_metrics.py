from typing import Optional
from prometheus_client import Counter, Histogram, Info, generate_latest
from prometheus_client.core import CollectorRegistry
import logging

logger = logging.getLogger(__name__)

# Prometheus Registry
REGISTRY = CollectorRegistry()

# Service Metrics
service_requests_total = Counter(
    'rental_service_requests_total',
    'Total service method calls',
    ['status', 'service', 'method'],
    registry=REGISTRY
)

service_duration_seconds = Histogram(
    'rental_service_duration_seconds',
    'Service method duration in seconds',
    ['service', 'method'],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
    registry=REGISTRY
)

# Asset resolution outcomes: primary | fallback | empty | alt_key
asset_resolutions_total = Counter(
    'rental_asset_resolutions_total',
    'Vehicle asset resolutions by outcome',
    ['outcome'],
    registry=REGISTRY
)

enriched_records_total = Counter(
    'rental_enriched_records_total',
    'Booking records enriched',
    ['kind', 'vehicle_resolved'],
    registry=REGISTRY
)

system_info = Info(
    'rental_ops_info',
    'System information',
    registry=REGISTRY
)


class PrometheusMetricsCollector:
    """Thin facade over the module-level Prometheus instruments"""

    def __init__(self):
        system_info.info({
            'version': '1.0.0',
            'service': 'rental-ops-core'
        })

    def record_service_call(
        self,
        service_name: str,
        method_name: str,
        duration_seconds: float,
        success: bool,
        user_id: Optional[str] = None
    ):
        status = 'success' if success else 'error'

        service_requests_total.labels(
            status=status,
            service=service_name,
            method=method_name
        ).inc()

        service_duration_seconds.labels(
            service=service_name,
            method=method_name
        ).observe(duration_seconds)

    def record_asset_resolution(self, outcome: str):
        asset_resolutions_total.labels(outcome=outcome).inc()

    def record_enriched_record(self, kind: str, vehicle_resolved: bool):
        enriched_records_total.labels(
            kind=kind,
            vehicle_resolved=str(vehicle_resolved).lower()
        ).inc()

    def get_prometheus_metrics(self) -> bytes:
        """Get Prometheus metrics in text format"""
        return generate_latest(REGISTRY)


# Global instance
prometheus_collector = PrometheusMetricsCollector()

#!/usr/bin/env python3
"""
Prometheus metrics exported by the scaler
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

logger = logging.getLogger(__name__)


class ScalerMetrics:
    """
    Counters and gauges updated per processed autoscaler

    Each instance owns its registry, metrics are registered once on creation
    and never reset while the process runs.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.hpa_totals = Counter(
            'estafette_hpa_scaler_totals',
            'Number of processed HorizontalPodAutoscalers.',
            ['namespace', 'status', 'initiator'],
            registry=self.registry
        )
        self.min_replicas = Gauge(
            'estafette_hpa_scaler_min_replicas',
            'The minimum number of replicas per hpa as set by this application.',
            ['hpa', 'namespace'],
            registry=self.registry
        )
        self.actual_replicas = Gauge(
            'estafette_hpa_scaler_actual_replicas',
            'The actual number of replicas per hpa as seen by this application.',
            ['hpa', 'namespace'],
            registry=self.registry
        )
        self.request_rate = Gauge(
            'estafette_hpa_scaler_request_rate',
            'The request rate used for setting minimum number of replicas per hpa.',
            ['hpa', 'namespace'],
            registry=self.registry
        )

    def record_processed(self, namespace: str, status: str, initiator: str):
        self.hpa_totals.labels(namespace=namespace, status=status, initiator=initiator).inc()

    def record_decision(self, hpa: str, namespace: str, min_replicas: int, actual_replicas: int, request_rate: float):
        self.min_replicas.labels(hpa=hpa, namespace=namespace).set(min_replicas)
        self.actual_replicas.labels(hpa=hpa, namespace=namespace).set(actual_replicas)
        self.request_rate.labels(hpa=hpa, namespace=namespace).set(request_rate)

    def start_server(self, port: int, addr: str = "0.0.0.0"):
        """Serve /metrics from a background thread"""
        start_http_server(port, addr=addr, registry=self.registry)
        logger.info(f"Prometheus metrics server started on {addr}:{port}")

"""
Shared fixtures and mock collaborators for the scaler tests
"""

from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest
from kubernetes import client

from hpa_scaler.config.settings import KubernetesSettings, PrometheusSettings, ScalerSettings, Settings
from hpa_scaler.core.annotations import (
    ANNOTATION_HPA_SCALER,
    ANNOTATION_PROMETHEUS_QUERY,
    ANNOTATION_REQUESTS_PER_REPLICA,
)
from hpa_scaler.core.errors import ClusterListError, QueryError
from hpa_scaler.core.metrics import ScalerMetrics
from hpa_scaler.core.reconciler import HPAScalerReconciler

PROMETHEUS_URL = "http://prometheus.monitoring.svc"


def make_hpa(
    name: str = "web",
    namespace: str = "default",
    annotations: Optional[Dict[str, str]] = None,
    labels: Optional[Dict[str, str]] = None,
    min_replicas: Optional[int] = 3,
    max_replicas: int = 100,
    current_replicas: int = 10
) -> client.V1HorizontalPodAutoscaler:
    """Build a real autoscaling/v1 object as returned by the API"""
    return client.V1HorizontalPodAutoscaler(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            annotations=annotations,
            labels=labels if labels is not None else {"app": name},
            resource_version="1"
        ),
        spec=client.V1HorizontalPodAutoscalerSpec(
            min_replicas=min_replicas,
            max_replicas=max_replicas,
            scale_target_ref=client.V1CrossVersionObjectReference(kind="Deployment", name=name)
        ),
        status=client.V1HorizontalPodAutoscalerStatus(
            current_replicas=current_replicas,
            desired_replicas=current_replicas
        )
    )


def make_replica_set(app: str, replicas: int, namespace: str = "default") -> client.V1ReplicaSet:
    return client.V1ReplicaSet(
        metadata=client.V1ObjectMeta(name=f"{app}-{replicas}", namespace=namespace, labels={"app": app}),
        status=client.V1ReplicaSetStatus(replicas=replicas)
    )


def scaler_annotations(**extra) -> Dict[str, str]:
    annotations = {
        ANNOTATION_HPA_SCALER: "true",
        ANNOTATION_PROMETHEUS_QUERY: "sum(rate(nginx_http_requests_total[5m]))",
        ANNOTATION_REQUESTS_PER_REPLICA: "10",
    }
    annotations.update(extra)
    return annotations


class MockCluster:
    """In-memory stand-in for KubernetesClusterClient"""

    def __init__(self, hpas: List = None, replica_sets: List = None):
        self.hpas = hpas or []
        self.replica_sets = replica_sets or []
        self.updated = []
        self.replica_set_calls = 0
        self.list_error: Optional[ClusterListError] = None
        self.replica_set_error: Optional[Exception] = None
        self.update_errors: Dict[str, Exception] = {}

    def list_autoscalers(self, namespace=None):
        if self.list_error:
            raise self.list_error
        return list(self.hpas)

    def update_autoscaler(self, hpa):
        if hpa.metadata.name in self.update_errors:
            raise self.update_errors[hpa.metadata.name]
        self.updated.append(hpa)
        return hpa

    def list_replica_sets(self, namespace=None):
        self.replica_set_calls += 1
        if self.replica_set_error:
            raise self.replica_set_error
        return list(self.replica_sets)


class MockPrometheusClient:
    """Returns canned request rates per query"""

    def __init__(self, rates: Dict[str, float] = None, default: float = 50.0):
        self.rates = rates or {}
        self.default = default
        self.failing_queries = set()
        self.query_count = 0

    def get_request_rate(self, query: str, server_url: str) -> float:
        self.query_count += 1
        if query in self.failing_queries:
            raise QueryError(f"Executing prometheus query against {server_url} failed")
        return self.rates.get(query, self.default)


@pytest.fixture
def settings():
    return Settings(
        prometheus=PrometheusSettings(server_url=PROMETHEUS_URL),
        kubernetes=KubernetesSettings(in_cluster=False, namespace="", app_label="app"),
        scaler=ScalerSettings(minimum_replicas_lower_bound=3, dry_run=False, poll_interval=90, jitter_ratio=0.25)
    )


@pytest.fixture
def cluster():
    return MockCluster()


@pytest.fixture
def prometheus():
    return MockPrometheusClient()


@pytest.fixture
def metrics():
    return ScalerMetrics()


@pytest.fixture
def reconciler(settings, cluster, prometheus, metrics):
    return HPAScalerReconciler(settings, cluster, prometheus, metrics)


@pytest.fixture
def mock_response():
    """Factory for requests responses with a given body"""
    def _make(body: bytes, status_code: int = 200):
        response = Mock()
        response.status_code = status_code
        response.content = body
        response.raise_for_status = Mock()
        return response
    return _make

#!/usr/bin/env python3
"""
Reconciler that drives one pass over all autoscalers

For every autoscaler the desired state is resolved from its annotations, the
target minReplicas is calculated and, if it differs from the current value,
written back together with a snapshot of the desired state.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from kubernetes.client import V1HorizontalPodAutoscaler

from hpa_scaler.config.settings import Settings
from hpa_scaler.models.results import (
    PassResult,
    ResourceResult,
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_SUCCEEDED,
)
from .annotations import ANNOTATION_STATE
from .calculator import calculate_target
from .cluster import KubernetesClusterClient
from .deployment import ReplicaSetSnapshot, is_deployment_in_progress
from .desired_state import resolve_desired_state
from .errors import ClusterListError, ClusterWriteError, HPAScalerError, QueryError
from .logging_config import log_separator
from .metrics import ScalerMetrics
from .prometheus import PrometheusClient

logger = logging.getLogger(__name__)

# Kubernetes defaults minReplicas to 1 when unset
DEFAULT_MIN_REPLICAS = 1


class PassContext:
    """State shared by all autoscalers processed in a single pass"""

    def __init__(self, initiator: str, replica_sets: ReplicaSetSnapshot):
        self.initiator = initiator
        self.replica_sets = replica_sets
        self.started_at = datetime.now(timezone.utc)


class HPAScalerReconciler:
    """Computes and applies minReplicas floors for autoscalers"""

    def __init__(
        self,
        settings: Settings,
        cluster: KubernetesClusterClient,
        prometheus: PrometheusClient,
        metrics: ScalerMetrics
    ):
        """
        Initialize the reconciler

        Args:
            settings: Scaler settings
            cluster: Kubernetes API wrapper
            prometheus: Prometheus query client
            metrics: Metrics registry updated per autoscaler
        """
        self.settings = settings
        self.cluster = cluster
        self.prometheus = prometheus
        self.metrics = metrics
        self.last_pass: Optional[PassResult] = None

        # Passes never overlap, the poller and the API share this reconciler
        self._pass_lock = threading.Lock()
        self._pass_counter = 0

    def wait_idle(self):
        """Block until the pass currently running, if any, has finished"""
        with self._pass_lock:
            pass

    def new_context(self, initiator: str) -> PassContext:
        namespace = self.settings.kubernetes.namespace or None
        snapshot = ReplicaSetSnapshot(lambda: self.cluster.list_replica_sets(namespace))
        return PassContext(initiator, snapshot)

    def run_pass(self, initiator: str = "poller") -> PassResult:
        """
        Process all autoscalers once

        Failures of individual autoscalers are recorded in the result and
        never stop the pass.
        """
        with self._pass_lock:
            self._pass_counter += 1
            log_separator(logger, f"PASS #{self._pass_counter} ({initiator})", 60)

            context = self.new_context(initiator)
            result = PassResult(initiator=initiator, started_at=context.started_at)

            namespace = self.settings.kubernetes.namespace or None
            logger.info(f"Listing horizontal pod autoscalers for {namespace or 'all namespaces'}...")

            try:
                hpas = self.cluster.list_autoscalers(namespace)
            except ClusterListError as e:
                logger.error(str(e))
                result.error = str(e)
                result.finished_at = datetime.now(timezone.utc)
                self.last_pass = result
                return result

            logger.info(f"Cluster has {len(hpas)} horizontal pod autoscalers")

            for hpa in hpas:
                resource_result = self.process_autoscaler(hpa, context)
                self.metrics.record_processed(resource_result.namespace, resource_result.status, initiator)
                result.resources.append(resource_result)

            result.finished_at = datetime.now(timezone.utc)
            logger.info(f"Pass #{self._pass_counter} finished: {result.status_counts()}")

            self.last_pass = result
            return result

    def process_autoscaler(self, hpa: V1HorizontalPodAutoscaler, context: PassContext) -> ResourceResult:
        """Process a single autoscaler, never raises"""
        name = ""
        namespace = ""

        try:
            name = hpa.metadata.name or ""
            namespace = hpa.metadata.namespace or ""
            return self._process(hpa, context)
        except (QueryError, ClusterWriteError) as e:
            logger.warning(f"[{context.initiator}] HorizontalPodAutoscaler {name}.{namespace} - {e}")
            return ResourceResult(name=name, namespace=namespace, status=STATUS_FAILED, error=str(e))
        except HPAScalerError as e:
            logger.error(f"[{context.initiator}] HorizontalPodAutoscaler {name}.{namespace} - {e}")
            return ResourceResult(name=name, namespace=namespace, status=STATUS_FAILED, error=str(e))
        except Exception as e:
            logger.exception(f"[{context.initiator}] HorizontalPodAutoscaler {name}.{namespace} - unexpected error")
            return ResourceResult(name=name, namespace=namespace, status=STATUS_FAILED, error=str(e))

    def _process(self, hpa: V1HorizontalPodAutoscaler, context: PassContext) -> ResourceResult:
        name = hpa.metadata.name
        namespace = hpa.metadata.namespace

        if not hpa.metadata.annotations:
            return ResourceResult(name=name, namespace=namespace, status=STATUS_SKIPPED)

        desired_state = resolve_desired_state(hpa.metadata.annotations, self.settings.prometheus.server_url)
        if not desired_state.enabled:
            return ResourceResult(name=name, namespace=namespace, status=STATUS_SKIPPED)

        request_rate = 0.0
        if desired_state.metric_floor_enabled:
            request_rate = self.prometheus.get_request_rate(
                desired_state.prometheus_query,
                desired_state.prometheus_server_url
            )

        deployment_in_progress = False
        if desired_state.enable_deployment_checking:
            deployment_in_progress = self._is_deployment_in_progress(hpa, context)

        current_min_replicas = hpa.spec.min_replicas if hpa.spec.min_replicas is not None else DEFAULT_MIN_REPLICAS
        current_replicas = (hpa.status.current_replicas if hpa.status else None) or 0

        decision = calculate_target(
            desired_state,
            request_rate,
            current_min_replicas=current_min_replicas,
            current_max_replicas=hpa.spec.max_replicas,
            current_replicas=current_replicas,
            deployment_in_progress=deployment_in_progress,
            lower_bound=self.settings.scaler.minimum_replicas_lower_bound
        )

        self.metrics.record_decision(name, namespace, decision.target_min_replicas, current_replicas, request_rate)

        if not decision.changed:
            return ResourceResult(name=name, namespace=namespace, status=STATUS_SKIPPED, decision=decision)

        logger.info(
            f"[{context.initiator}] HorizontalPodAutoscaler {name}.{namespace} - Updating hpa because "
            f"minReplicas has changed from {decision.current_min_replicas} to {decision.target_min_replicas}..."
        )

        if self.settings.scaler.dry_run:
            logger.info(f"[{context.initiator}] HorizontalPodAutoscaler {name}.{namespace} - Dry-run mode: skipping update")
            return ResourceResult(name=name, namespace=namespace, status=STATUS_SKIPPED, decision=decision)

        # Serialize state and store it in the annotation
        desired_state.last_updated = datetime.now(timezone.utc).replace(microsecond=0)
        hpa.metadata.annotations[ANNOTATION_STATE] = desired_state.to_annotation()
        hpa.spec.min_replicas = decision.target_min_replicas
        hpa.spec.max_replicas = decision.target_max_replicas

        self.cluster.update_autoscaler(hpa)

        logger.info(f"[{context.initiator}] HorizontalPodAutoscaler {name}.{namespace} - Updated hpa successfully...")
        return ResourceResult(name=name, namespace=namespace, status=STATUS_SUCCEEDED, decision=decision)

    def _is_deployment_in_progress(self, hpa: V1HorizontalPodAutoscaler, context: PassContext) -> bool:
        try:
            replica_sets = context.replica_sets.get()
        except ClusterListError:
            return False

        app_label = self.settings.kubernetes.app_label
        app = (hpa.metadata.labels or {}).get(app_label)
        in_progress = is_deployment_in_progress(app, replica_sets, app_label)
        if in_progress:
            logger.info(
                f"[{context.initiator}] HorizontalPodAutoscaler {hpa.metadata.name}.{hpa.metadata.namespace} - "
                f"Deployment of {app} in progress, scale down ratio suspended"
            )

        return in_progress

#!/usr/bin/env python3
"""
Replica target calculation combining the metric floor, the ratio floor and
the global lower bound
"""

import logging
import math

from hpa_scaler.models.state import DesiredState
from hpa_scaler.models.results import ScalingDecision

logger = logging.getLogger(__name__)


def metric_floor(delta: float, request_rate: float, requests_per_replica: float) -> int:
    """Minimum replicas needed to serve the request rate, rounded up"""
    return int(math.ceil(delta + request_rate / requests_per_replica))


def ratio_floor(current_replicas: int, scale_down_max_ratio: float) -> int:
    """
    Minimum replicas allowed after one scale down step

    The removed amount is rounded down so scale down is slower rather than
    faster. If it rounds down to zero one replica may still go, a ratio
    limit never blocks scaling down completely.
    """
    max_scale_down = int(math.floor(current_replicas * scale_down_max_ratio))
    if max_scale_down == 0:
        return current_replicas - 1

    return current_replicas - max_scale_down


def calculate_target(
    desired_state: DesiredState,
    request_rate: float,
    current_min_replicas: int,
    current_max_replicas: int,
    current_replicas: int,
    deployment_in_progress: bool,
    lower_bound: int
) -> ScalingDecision:
    """
    Calculate the minReplicas (and maxReplicas) an autoscaler should have

    Args:
        desired_state: Resolved scaler configuration
        request_rate: Value of the Prometheus query, ignored when the metric floor is disabled
        current_min_replicas: minReplicas currently set on the autoscaler
        current_max_replicas: maxReplicas currently set on the autoscaler
        current_replicas: Replicas currently running
        deployment_in_progress: Suspends the ratio floor when true
        lower_bound: Global hard lower bound for minReplicas

    Returns:
        ScalingDecision with the target values
    """
    min_from_metric = 0
    if desired_state.metric_floor_enabled:
        min_from_metric = metric_floor(desired_state.delta, request_rate, desired_state.requests_per_replica)

    min_from_ratio = min_from_metric
    if not deployment_in_progress:
        min_from_ratio = ratio_floor(current_replicas, desired_state.scale_down_max_ratio)

    target_min = max(min_from_metric, min_from_ratio, lower_bound)

    target_max = current_max_replicas
    if target_min >= current_max_replicas:
        target_max = target_min + 1

    logger.debug(
        f"Calculated values: requestRate={request_rate}, metricFloor={min_from_metric}, "
        f"ratioFloor={min_from_ratio}, requestsPerReplica={desired_state.requests_per_replica}, "
        f"delta={desired_state.delta}, scaleDownMaxRatio={desired_state.scale_down_max_ratio}, "
        f"deploymentInProgress={deployment_in_progress}, target={target_min}"
    )

    return ScalingDecision(
        request_rate=request_rate,
        metric_floor=min_from_metric,
        ratio_floor=min_from_ratio,
        deployment_in_progress=deployment_in_progress,
        current_replicas=current_replicas,
        current_min_replicas=current_min_replicas,
        current_max_replicas=current_max_replicas,
        target_min_replicas=target_min,
        target_max_replicas=target_max
    )

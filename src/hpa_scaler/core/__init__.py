"""
Core scaler modules
"""

from .reconciler import HPAScalerReconciler, PassContext
from .scheduler import PollScheduler, apply_jitter
from .prometheus import PrometheusClient
from .cluster import KubernetesClusterClient
from .metrics import ScalerMetrics

__all__ = [
    "HPAScalerReconciler",
    "PassContext",
    "PollScheduler",
    "apply_jitter",
    "PrometheusClient",
    "KubernetesClusterClient",
    "ScalerMetrics"
]

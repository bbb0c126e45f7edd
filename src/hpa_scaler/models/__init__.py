"""
Models package for scaler data structures
"""

from .state import DesiredState
from .prometheus import PrometheusQueryResponse, PrometheusQueryData, PrometheusQueryResult
from .results import (
    ScalingDecision,
    ResourceResult,
    PassResult,
    STATUS_SUCCEEDED,
    STATUS_FAILED,
    STATUS_SKIPPED,
)

__all__ = [
    "DesiredState",
    "PrometheusQueryResponse",
    "PrometheusQueryData",
    "PrometheusQueryResult",
    "ScalingDecision",
    "ResourceResult",
    "PassResult",
    "STATUS_SUCCEEDED",
    "STATUS_FAILED",
    "STATUS_SKIPPED",
]

#!/usr/bin/env python3
"""
Resolves the desired scaler state of an autoscaler from its annotations

Every field is resolved on its own. A missing or malformed annotation never
raises, the field simply takes its default.
"""

import logging
import math
from typing import Mapping, Optional, Tuple

from hpa_scaler.models.state import DesiredState
from .annotations import (
    ANNOTATION_HPA_SCALER,
    ANNOTATION_PROMETHEUS_QUERY,
    ANNOTATION_REQUESTS_PER_REPLICA,
    ANNOTATION_DELTA,
    ANNOTATION_PROMETHEUS_SERVER_URL,
    ANNOTATION_SCALE_DOWN_MAX_RATIO,
    ANNOTATION_ENABLE_DEPLOYMENT_CHECKING,
)
from .errors import ConfigParseError

logger = logging.getLogger(__name__)


def parse_float(annotations: Mapping[str, str], key: str) -> Tuple[float, bool]:
    """
    Parse a float annotation

    Returns:
        (value, True) if the annotation is present and holds a finite number,
        (0.0, False) otherwise
    """
    raw = annotations.get(key)
    if raw is None:
        return 0.0, False

    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.debug(str(ConfigParseError(key, raw)))
        return 0.0, False

    if not math.isfinite(value):
        logger.debug(str(ConfigParseError(key, raw)))
        return 0.0, False

    return value, True


def parse_bool(annotations: Mapping[str, str], key: str) -> Tuple[bool, bool]:
    """Parse a "true"/"false" annotation, case insensitive"""
    raw = annotations.get(key)
    if raw is None:
        return False, False

    normalized = str(raw).strip().lower()
    if normalized == "true":
        return True, True
    if normalized == "false":
        return False, True

    logger.debug(str(ConfigParseError(key, raw)))
    return False, False


def resolve_desired_state(
    annotations: Optional[Mapping[str, str]],
    default_prometheus_server_url: str
) -> DesiredState:
    """
    Build the DesiredState for an autoscaler

    Args:
        annotations: Annotation map of the autoscaler, may be None
        default_prometheus_server_url: Endpoint used when no override annotation is set

    Returns:
        DesiredState with defaults for every absent or malformed field
    """
    annotations = annotations or {}
    state = DesiredState(prometheus_server_url=default_prometheus_server_url)

    enabled, ok = parse_bool(annotations, ANNOTATION_HPA_SCALER)
    if ok:
        state.enabled = enabled

    state.prometheus_query = annotations.get(ANNOTATION_PROMETHEUS_QUERY, "")

    requests_per_replica, ok = parse_float(annotations, ANNOTATION_REQUESTS_PER_REPLICA)
    if ok:
        state.requests_per_replica = requests_per_replica

    delta, ok = parse_float(annotations, ANNOTATION_DELTA)
    if ok:
        state.delta = delta

    server_url = annotations.get(ANNOTATION_PROMETHEUS_SERVER_URL, "").strip()
    if server_url:
        state.prometheus_server_url = server_url

    ratio, ok = parse_float(annotations, ANNOTATION_SCALE_DOWN_MAX_RATIO)
    if ok and 0 <= ratio <= 1:
        state.scale_down_max_ratio = ratio
    elif ok:
        logger.debug(str(ConfigParseError(ANNOTATION_SCALE_DOWN_MAX_RATIO, str(ratio))))

    checking, ok = parse_bool(annotations, ANNOTATION_ENABLE_DEPLOYMENT_CHECKING)
    if ok:
        state.enable_deployment_checking = checking

    return state

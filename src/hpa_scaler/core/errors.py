#!/usr/bin/env python3
"""
Exception taxonomy for the scaling decision engine
"""


class HPAScalerError(Exception):
    """Base class for all scaler errors"""


class ConfigParseError(HPAScalerError):
    """Annotation present but malformed; callers fall back to the default"""

    def __init__(self, key: str, value: str):
        self.key = key
        self.value = value
        super().__init__(f"Annotation {key}={value!r} could not be parsed")


class QueryError(HPAScalerError):
    """Fetching or decoding a Prometheus query result failed"""


class ClusterListError(HPAScalerError):
    """Listing autoscalers or replica sets failed"""


class ClusterWriteError(HPAScalerError):
    """Updating an autoscaler failed"""

"""
Configuration module for scaler settings
"""

from .settings import Settings, PrometheusSettings, KubernetesSettings, ScalerSettings, LoggingSettings

__all__ = [
    "Settings",
    "PrometheusSettings",
    "KubernetesSettings",
    "ScalerSettings",
    "LoggingSettings"
]

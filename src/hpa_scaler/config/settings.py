#!/usr/bin/env python3
"""
Configuration settings using Pydantic for environment variable loading

A malformed value never stops the process, the field falls back to its
default and a warning is logged.
"""

import logging
import os
from typing import Optional, Dict, Any

from dotenv import load_dotenv
from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)


def env_int(name: str, default: int) -> int:
    """Integer from an environment variable, the default if unset or malformed"""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"{name}={value!r} is not an integer, using {default}")
        return default


class _FallbackSettings(BaseSettings):
    """Settings group whose invalid values are replaced by the field default"""

    @field_validator("*", mode="wrap")
    @classmethod
    def fallback_to_default(cls, value, handler, info: ValidationInfo):
        try:
            return handler(value)
        except ValidationError:
            default = cls.model_fields[info.field_name].get_default(call_default_factory=True)
            logger.warning(f"Invalid value {value!r} for {cls.__name__}.{info.field_name}, using {default!r}")
            return default


class PrometheusSettings(_FallbackSettings):
    """Prometheus configuration settings"""
    server_url: str = os.getenv("PROMETHEUS_SERVER_URL", "")
    query_timeout: float = 10.0
    retries: int = 3

    class Config:
        env_prefix = "PROMETHEUS_"
        extra = "ignore"


class KubernetesSettings(_FallbackSettings):
    """Kubernetes configuration settings"""
    in_cluster: bool = True
    kubeconfig_path: Optional[str] = os.getenv("KUBECONFIG_PATH", None)
    # Empty means all namespaces
    namespace: str = ""
    app_label: str = "app"

    class Config:
        env_prefix = "KUBERNETES_"
        extra = "ignore"


class ScalerSettings(_FallbackSettings):
    """Main scaler configuration settings"""
    minimum_replicas_lower_bound: int = Field(default_factory=lambda: env_int("MINIMUM_REPLICAS_LOWER_BOUND", 3))
    poll_interval: float = 90.0
    jitter_ratio: float = 0.25
    dry_run: bool = False

    # Metrics and API settings
    metrics_port: int = 9101
    api_enabled: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    class Config:
        env_prefix = "SCALER_"
        extra = "ignore"


class LoggingSettings(_FallbackSettings):
    """Logging configuration settings"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_format: str = "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"
    file: Optional[str] = None
    # Colors are only used when stdout is a terminal
    colors: bool = True

    class Config:
        env_prefix = "LOG_"
        extra = "ignore"


class Settings(_FallbackSettings):
    """Main settings class that includes all sub-settings"""
    debug: bool = False

    # Component settings
    prometheus: PrometheusSettings = Field(default_factory=PrometheusSettings)
    kubernetes: KubernetesSettings = Field(default_factory=KubernetesSettings)
    scaler: ScalerSettings = Field(default_factory=ScalerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def summary(self) -> Dict[str, Any]:
        """Settings safe to expose over the API"""
        return {
            "prometheus": {
                "server_url": self.prometheus.server_url,
                "query_timeout": self.prometheus.query_timeout,
                "retries": self.prometheus.retries
            },
            "kubernetes": {
                "in_cluster": self.kubernetes.in_cluster,
                "namespace": self.kubernetes.namespace or "all",
                "app_label": self.kubernetes.app_label
            },
            "scaler": {
                "minimum_replicas_lower_bound": self.scaler.minimum_replicas_lower_bound,
                "poll_interval": self.scaler.poll_interval,
                "jitter_ratio": self.scaler.jitter_ratio,
                "dry_run": self.scaler.dry_run
            }
        }

    @classmethod
    def load_from_yaml_with_env_override(cls, yaml_path: str) -> "Settings":
        """Load settings from YAML file and override with environment variables"""
        import yaml

        yaml_config = {}
        if os.path.exists(yaml_path):
            with open(yaml_path, 'r') as f:
                # Process environment variables in YAML
                yaml_content = f.read()
                for key, value in os.environ.items():
                    yaml_content = yaml_content.replace(f"${{{key}}}", value)
                yaml_config = yaml.safe_load(yaml_content) or {}

        return Settings(
            debug=yaml_config.get("debug", False),
            prometheus=PrometheusSettings(**yaml_config.get("prometheus", {})),
            kubernetes=KubernetesSettings(**yaml_config.get("kubernetes", {})),
            scaler=ScalerSettings(**yaml_config.get("scaler", {})),
            logging=LoggingSettings(**yaml_config.get("logging", {}))
        )

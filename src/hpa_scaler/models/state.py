#!/usr/bin/env python3
"""
Pydantic model for the desired scaler state of a single autoscaler
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class DesiredState(BaseModel):
    """Scaler configuration resolved from an autoscaler's annotations"""
    enabled: bool = Field(False, description="Master switch for this autoscaler")
    prometheus_query: str = Field("", alias="prometheusQuery", description="Query returning the request rate")
    requests_per_replica: float = Field(1.0, alias="requestsPerReplica", description="Divisor converting the rate to replicas")
    delta: float = Field(0.0, description="Offset added before rounding up")
    prometheus_server_url: str = Field("", alias="prometheusServerUrl", description="Prometheus endpoint to query")
    scale_down_max_ratio: float = Field(1.0, alias="scaleDownMaxRatio", description="Fraction of replicas allowed to go in one step")
    enable_deployment_checking: bool = Field(
        False,
        alias="enableScaleDownRatioDeploymentChecking",
        description="Suspend the ratio floor while a rollout is in progress"
    )
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated", description="Time of the last write by the scaler")

    class Config:
        populate_by_name = True

    @property
    def metric_floor_enabled(self) -> bool:
        return len(self.prometheus_query) > 0 and self.requests_per_replica > 0

    def to_annotation(self) -> str:
        """Serialize the state into the JSON stored in the state annotation"""
        return self.model_dump_json(by_alias=True)

#!/usr/bin/env python3
"""
Pydantic models describing scaling decisions and pass outcomes
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScalingDecision(BaseModel):
    """Outcome of the replica target calculation for one autoscaler"""
    request_rate: float = Field(0.0, description="Value returned by the Prometheus query")
    metric_floor: int = Field(0, description="Floor derived from the request rate")
    ratio_floor: int = Field(0, description="Floor derived from the scale down ratio")
    deployment_in_progress: bool = Field(False, description="Whether the ratio floor was suspended")
    current_replicas: int = Field(0, ge=0)
    current_min_replicas: int = Field(..., description="minReplicas before this decision")
    current_max_replicas: int = Field(..., description="maxReplicas before this decision")
    target_min_replicas: int = Field(..., description="minReplicas after this decision")
    target_max_replicas: int = Field(..., description="maxReplicas after this decision")

    @property
    def changed(self) -> bool:
        return self.target_min_replicas != self.current_min_replicas


class ResourceResult(BaseModel):
    """Result of processing a single autoscaler in a pass"""
    name: str
    namespace: str
    status: str
    decision: Optional[ScalingDecision] = None
    error: Optional[str] = None


class PassResult(BaseModel):
    """Result of one pass over all autoscalers"""
    initiator: str
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    resources: List[ResourceResult] = Field(default_factory=list)
    error: Optional[str] = None

    def status_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for resource in self.resources:
            counts[resource.status] = counts.get(resource.status, 0) + 1
        return counts

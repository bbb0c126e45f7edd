#!/usr/bin/env python3
"""
Pydantic models for the Prometheus instant query API envelope

Example body:
{"status":"success","data":{"resultType":"vector","result":[{"metric":{"location":"@api"},"value":[1513161148.757,"225.4068155675859"]}]}}
"""

import math
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class PrometheusQueryResult(BaseModel):
    """One sample of an instant vector"""
    metric: Dict[str, Any] = Field(default_factory=dict, description="Label set of the series")
    value: List[Any] = Field(default_factory=list, description="[timestamp, stringified value]")


class PrometheusQueryData(BaseModel):
    result_type: str = Field("", alias="resultType")
    result: List[PrometheusQueryResult] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class PrometheusQueryResponse(BaseModel):
    """Top level response of /api/v1/query"""
    status: str
    data: Optional[PrometheusQueryData] = None
    error_type: Optional[str] = Field(None, alias="errorType")
    error: Optional[str] = None

    class Config:
        populate_by_name = True

    def get_request_rate(self) -> float:
        """
        Convert the first sample's string value into a float

        Raises:
            ValueError: if there is no sample or the value is not numeric
        """
        if self.data is None or not self.data.result:
            raise ValueError("Query returned no results")

        value = self.data.result[0].value
        if len(value) < 2 or not isinstance(value[1], str):
            raise ValueError(f"Unexpected sample value {value!r}")

        rate = float(value[1])
        if not math.isfinite(rate):
            raise ValueError(f"Query returned non-finite value {value[1]!r}")

        return rate

#!/usr/bin/env python3
"""
FastAPI server module for scaler API endpoints
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn

from hpa_scaler import __version__
from hpa_scaler.core.desired_state import resolve_desired_state
from hpa_scaler.core.reconciler import HPAScalerReconciler
from hpa_scaler.core.scheduler import PollScheduler
from hpa_scaler.models.results import PassResult

logger = logging.getLogger(__name__)


class DesiredStateRequest(BaseModel):
    annotations: Dict[str, str] = {}


def _pass_summary(result: Optional[PassResult]) -> Optional[Dict]:
    if result is None:
        return None

    return {
        "initiator": result.initiator,
        "started_at": result.started_at.isoformat(),
        "finished_at": result.finished_at.isoformat() if result.finished_at else None,
        "error": result.error,
        "counts": result.status_counts(),
        "resources": [r.model_dump(mode="json") for r in result.resources]
    }


class APIServer:
    """FastAPI server for scaler endpoints"""

    def __init__(self, reconciler: HPAScalerReconciler, scheduler: Optional[PollScheduler] = None):
        """
        Initialize API server

        Args:
            reconciler: Reconciler used for on-demand passes
            scheduler: Poll scheduler, reported by the health check
        """
        self.reconciler = reconciler
        self.scheduler = scheduler
        self.app = FastAPI(
            title="HPA Scaler API",
            description="API for inspecting and triggering HPA minReplicas reconciliation",
            version=__version__
        )
        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes"""

        @self.app.get("/")
        async def root():
            """Root endpoint"""
            return {
                "service": "HPA Scaler",
                "version": __version__,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

        @self.app.get("/health")
        async def health_check():
            """Healthy while the poll loop is running"""
            healthy = self.scheduler is None or self.scheduler.running
            return JSONResponse(
                content={
                    "status": "healthy" if healthy else "unhealthy",
                    "timestamp": datetime.now(timezone.utc).isoformat()
                },
                status_code=200 if healthy else 503
            )

        @self.app.get("/status")
        async def get_status():
            """Last pass summary and settings in effect"""
            return {
                "last_pass": _pass_summary(self.reconciler.last_pass),
                "settings": self.reconciler.settings.summary(),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

        @self.app.post("/reconcile")
        def run_reconcile():
            """Run a pass now, waits for a running pass to finish first"""
            try:
                result = self.reconciler.run_pass("api")
            except Exception as e:
                logger.error(f"Error running pass from API: {e}")
                raise HTTPException(status_code=500, detail=str(e))

            return _pass_summary(result)

        @self.app.post("/desired-state")
        async def get_desired_state(request: DesiredStateRequest):
            """Resolve the desired state for an annotation map without touching the cluster"""
            state = resolve_desired_state(request.annotations, self.reconciler.settings.prometheus.server_url)
            return state.model_dump(mode="json", by_alias=True)

    def run(self, host: str = "0.0.0.0", port: int = 8080):
        """Run the API server"""
        logger.info(f"Starting API server on {host}:{port}")
        uvicorn.run(self.app, host=host, port=port, log_level="warning")

#!/usr/bin/env python3
"""
Annotation keys read from and written to HorizontalPodAutoscaler resources
"""

ANNOTATION_HPA_SCALER = "estafette.io/hpa-scaler"
ANNOTATION_PROMETHEUS_QUERY = "estafette.io/hpa-scaler-prometheus-query"
ANNOTATION_REQUESTS_PER_REPLICA = "estafette.io/hpa-scaler-requests-per-replica"
ANNOTATION_DELTA = "estafette.io/hpa-scaler-delta"
ANNOTATION_PROMETHEUS_SERVER_URL = "estafette.io/hpa-scaler-prometheus-server-url"
ANNOTATION_SCALE_DOWN_MAX_RATIO = "estafette.io/hpa-scaler-scale-down-max-ratio"
ANNOTATION_ENABLE_DEPLOYMENT_CHECKING = "estafette.io/hpa-scaler-enable-scale-down-ratio-deployment-checking"

# Written by the scaler, never read back for decisions
ANNOTATION_STATE = "estafette.io/hpa-scaler-state"

"""
HPA Scaler - keeps a floor under HorizontalPodAutoscaler minReplicas
"""

__version__ = "1.0.0"

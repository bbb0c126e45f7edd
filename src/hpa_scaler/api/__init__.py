"""
HTTP API for the scaler
"""

from .server import APIServer

__all__ = ["APIServer"]

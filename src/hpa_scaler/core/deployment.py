#!/usr/bin/env python3
"""
Detects rollouts in progress from the replica sets of an application
"""

import logging
import threading
from typing import Callable, List, Optional

from kubernetes.client import V1ReplicaSet

from .errors import ClusterListError

logger = logging.getLogger(__name__)


class ReplicaSetSnapshot:
    """
    Replica sets of the cluster, fetched lazily at most once per pass

    A snapshot belongs to exactly one pass. The first caller of get() fetches,
    every later caller in the same pass sees the same list, or the same error
    if the fetch failed.
    """

    def __init__(self, fetch: Callable[[], List[V1ReplicaSet]]):
        self._fetch = fetch
        self._lock = threading.Lock()
        self._fetched = False
        self._replica_sets: List[V1ReplicaSet] = []
        self._error: Optional[ClusterListError] = None

    @property
    def fetched(self) -> bool:
        return self._fetched

    def get(self) -> List[V1ReplicaSet]:
        """
        Return the replica sets, fetching them on first use

        Raises:
            ClusterListError: if the fetch for this pass failed
        """
        with self._lock:
            if not self._fetched:
                try:
                    self._replica_sets = self._fetch()
                except ClusterListError as e:
                    self._error = e
                except Exception as e:
                    self._error = ClusterListError(f"Listing replica sets failed: {e}")
                    self._error.__cause__ = e
                finally:
                    self._fetched = True

                if self._error is not None:
                    logger.error(f"{self._error}. Deployment checking is skipped for this pass.")

        if self._error is not None:
            raise self._error

        return self._replica_sets


def is_deployment_in_progress(app: Optional[str], replica_sets: List[V1ReplicaSet], app_label: str = "app") -> bool:
    """
    Whether the application is being rolled out right now

    An application counts as being deployed when more than one of its
    replica sets has a nonzero replica count.
    """
    if not app:
        return False

    non_empty_replica_set_count = 0
    for rs in replica_sets:
        labels = (rs.metadata.labels if rs.metadata else None) or {}
        if labels.get(app_label) != app:
            continue

        replicas = (rs.status.replicas if rs.status else None) or 0
        if replicas > 0:
            non_empty_replica_set_count += 1

    return non_empty_replica_set_count > 1

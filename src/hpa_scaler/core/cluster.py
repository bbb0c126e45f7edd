#!/usr/bin/env python3
"""
Kubernetes API access for listing and updating autoscalers and listing replica sets
"""

import logging
import os
from typing import List, Optional

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from .errors import ClusterListError, ClusterWriteError

logger = logging.getLogger(__name__)


def load_kubernetes_config(in_cluster: bool = True, kubeconfig_path: Optional[str] = None):
    """
    Load the Kubernetes client configuration

    Raises:
        FileNotFoundError: if an explicit kubeconfig path does not exist
        kubernetes.config.ConfigException: if no usable configuration is found
    """
    if in_cluster:
        logger.info("Loading in-cluster config")
        k8s_config.load_incluster_config()
        return

    if kubeconfig_path and not os.path.exists(kubeconfig_path):
        logger.error(f"Kubeconfig file not found at: {kubeconfig_path}")
        raise FileNotFoundError(f"Kubeconfig file not found: {kubeconfig_path}")

    logger.info(f"Loading kubeconfig from: {kubeconfig_path or 'default location'}")
    k8s_config.load_kube_config(config_file=kubeconfig_path)
    logger.info("Kubeconfig loaded successfully")


class KubernetesClusterClient:
    """Thin wrapper over the autoscaling/v1 and apps/v1 APIs"""

    def __init__(
        self,
        autoscaling_api: Optional[client.AutoscalingV1Api] = None,
        apps_api: Optional[client.AppsV1Api] = None
    ):
        self.autoscaling_api = autoscaling_api or client.AutoscalingV1Api()
        self.apps_api = apps_api or client.AppsV1Api()

    def list_autoscalers(self, namespace: Optional[str] = None) -> List[client.V1HorizontalPodAutoscaler]:
        """
        List horizontal pod autoscalers, in all namespaces unless one is given

        Raises:
            ClusterListError: if the API call fails
        """
        try:
            if namespace:
                hpas = self.autoscaling_api.list_namespaced_horizontal_pod_autoscaler(namespace)
            else:
                hpas = self.autoscaling_api.list_horizontal_pod_autoscaler_for_all_namespaces()
        except (ApiException, HTTPError) as e:
            raise ClusterListError(f"Could not list the horizontal pod autoscalers in the cluster: {e}") from e

        return list(hpas.items or [])

    def update_autoscaler(self, hpa: client.V1HorizontalPodAutoscaler) -> client.V1HorizontalPodAutoscaler:
        """
        Replace an autoscaler with the given object

        The object carries its resourceVersion, so a concurrent modification
        is rejected with a conflict instead of being overwritten.

        Raises:
            ClusterWriteError: if the API call fails
        """
        name = hpa.metadata.name
        namespace = hpa.metadata.namespace

        try:
            return self.autoscaling_api.replace_namespaced_horizontal_pod_autoscaler(name, namespace, hpa)
        except (ApiException, HTTPError) as e:
            raise ClusterWriteError(f"Could not update hpa {name} in namespace {namespace}: {e}") from e

    def list_replica_sets(self, namespace: Optional[str] = None) -> List[client.V1ReplicaSet]:
        """
        List replica sets, in all namespaces unless one is given

        Raises:
            ClusterListError: if the API call fails
        """
        logger.info(f"Listing replicasets for {namespace or 'all namespaces'}...")

        try:
            if namespace:
                replica_sets = self.apps_api.list_namespaced_replica_set(namespace)
            else:
                replica_sets = self.apps_api.list_replica_set_for_all_namespaces()
        except (ApiException, HTTPError) as e:
            raise ClusterListError(f"Could not list the replicasets in the cluster: {e}") from e

        items = list(replica_sets.items or [])
        logger.info(f"Cluster has {len(items)} replicasets")
        return items

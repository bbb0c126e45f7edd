#!/usr/bin/env python3
"""
HPA Scaler - Main Entry Point
Keeps a floor under HorizontalPodAutoscaler minReplicas based on Prometheus
queries and a maximum scale down ratio
"""

import logging
import os
import sys
import signal
import threading
from typing import Optional

from hpa_scaler.config import Settings
from hpa_scaler.core.cluster import KubernetesClusterClient, load_kubernetes_config
from hpa_scaler.core.logging_config import setup_logging
from hpa_scaler.core.metrics import ScalerMetrics
from hpa_scaler.core.prometheus import PrometheusClient
from hpa_scaler.core.reconciler import HPAScalerReconciler
from hpa_scaler.core.scheduler import PollScheduler
from hpa_scaler.api.server import APIServer


class HPAScalerService:
    """Main service that wires settings, clients, the poll loop and the API"""

    def __init__(self, config_path: Optional[str] = None, dry_run: bool = False):
        """Initialize the scaler service"""
        if config_path and os.path.exists(config_path):
            self.settings = Settings.load_from_yaml_with_env_override(config_path)
        else:
            self.settings = Settings()

        if dry_run:
            self.settings.scaler.dry_run = True

        setup_logging(self.settings.logging, debug=self.settings.debug)
        self.logger = logging.getLogger(__name__)

        if not self.settings.prometheus.server_url:
            self.logger.error(
                "PROMETHEUS_SERVER_URL is required. Please set PROMETHEUS_SERVER_URL environment "
                "variable to your Prometheus server service url."
            )
            sys.exit(1)

        self.cluster = self._init_cluster()
        self.prometheus = PrometheusClient(
            timeout=self.settings.prometheus.query_timeout,
            retries=self.settings.prometheus.retries
        )
        self.metrics = ScalerMetrics()
        self.reconciler = HPAScalerReconciler(self.settings, self.cluster, self.prometheus, self.metrics)
        self.scheduler = PollScheduler(
            self.reconciler,
            interval=self.settings.scaler.poll_interval,
            jitter_ratio=self.settings.scaler.jitter_ratio
        )
        self.api_server = APIServer(self.reconciler, self.scheduler)

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.logger.info("HPA Scaler Service initialized")
        if self.settings.scaler.dry_run:
            self.logger.info("Dry-run mode enabled")
        if self.settings.debug:
            self.logger.info(f"Debug mode enabled. Settings: {self.settings.summary()}")

    def _init_cluster(self) -> KubernetesClusterClient:
        """Connect to the Kubernetes API, the process cannot run without it"""
        try:
            load_kubernetes_config(
                in_cluster=self.settings.kubernetes.in_cluster,
                kubeconfig_path=self.settings.kubernetes.kubeconfig_path
            )
            cluster = KubernetesClusterClient()
            self.logger.info("Kubernetes client initialized successfully")
            return cluster

        except Exception as e:
            self.logger.error(f"Failed to initialize Kubernetes client: {e}")
            sys.exit(1)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        self.logger.info(f"Received signal {signum}. Waiting for running tasks to finish...")
        self.scheduler.stop()

    def run(self, once: bool = False):
        """Main run loop"""
        self.logger.info("Starting HPA Scaler Service...")

        self.metrics.start_server(self.settings.scaler.metrics_port)

        if self.settings.scaler.api_enabled and not once:
            api_thread = threading.Thread(
                target=self.api_server.run,
                kwargs={'host': self.settings.scaler.api_host, 'port': self.settings.scaler.api_port}
            )
            api_thread.daemon = True
            api_thread.start()
            self.logger.info(f"API server started on :{self.settings.scaler.api_port}")

        self.scheduler.run(max_passes=1 if once else None)

        # A pass started over the API may still be running
        self.reconciler.wait_idle()

        self.logger.info("Shutting down...")

    def cleanup(self):
        """Cleanup resources"""
        try:
            self.prometheus.close()
            self.logger.info("Cleanup completed")
        except Exception as e:
            self.logger.error(f"Error during cleanup: {e}")


def main():
    """Entry point"""
    import argparse

    parser = argparse.ArgumentParser(description='HPA Scaler')
    parser.add_argument(
        '--config',
        default=os.getenv('CONFIG_PATH'),
        help='Path to configuration file'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Calculate and log changes without updating autoscalers'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='Run a single pass and exit'
    )

    args = parser.parse_args()

    service = HPAScalerService(args.config, dry_run=args.dry_run)

    try:
        service.run(once=args.once)
    except Exception as e:
        service.logger.error(f"Fatal error: {e}")
        sys.exit(1)
    finally:
        service.cleanup()


if __name__ == "__main__":
    main()

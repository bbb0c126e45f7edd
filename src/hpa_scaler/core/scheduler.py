#!/usr/bin/env python3
"""
Poll scheduler running reconciliation passes on a jittered interval
"""

import logging
import random
import threading
from typing import Optional

from .reconciler import HPAScalerReconciler

logger = logging.getLogger(__name__)


def apply_jitter(base: float, ratio: float = 0.25, rng: Optional[random.Random] = None) -> float:
    """Return a value drawn uniformly from base +/- ratio * base"""
    rng = rng or random
    deviation = base * ratio
    return rng.uniform(base - deviation, base + deviation)


class PollScheduler:
    """Runs passes until stopped, a running pass is always allowed to finish"""

    def __init__(
        self,
        reconciler: HPAScalerReconciler,
        interval: float = 90,
        jitter_ratio: float = 0.25,
        rng: Optional[random.Random] = None
    ):
        self.reconciler = reconciler
        self.interval = interval
        self.jitter_ratio = jitter_ratio
        self.rng = rng or random.Random()
        self._stop_event = threading.Event()
        self.passes = 0

    @property
    def running(self) -> bool:
        return not self._stop_event.is_set()

    def stop(self):
        """Stop after the in-flight pass, interrupting the sleep in between"""
        logger.info("Stop requested, waiting for running pass to finish...")
        self._stop_event.set()

    def run(self, max_passes: Optional[int] = None):
        """
        Run passes until stop() is called

        Args:
            max_passes: Stop after this many passes, None for no limit
        """
        logger.info(f"Starting poll loop with {self.interval}s interval (+/-{self.jitter_ratio:.0%} jitter)")

        while self.running:
            try:
                self.reconciler.run_pass("poller")
            except Exception as e:
                logger.exception(f"Unexpected error in reconciliation pass: {e}")

            self.passes += 1
            if max_passes is not None and self.passes >= max_passes:
                break

            sleep_time = apply_jitter(self.interval, self.jitter_ratio, self.rng)
            logger.info(f"Sleeping for {sleep_time:.0f} seconds...")
            self._stop_event.wait(sleep_time)

        logger.info("Poll loop stopped")

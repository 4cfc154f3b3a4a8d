"""Identify system information used to manage local resources.
"""
import multiprocessing
import os

from snppipeline.log import logger

def get_cores():
    """Number of cores usable by this process.

    Respects CPU affinity masks where the platform exposes them, so runs
    inside a restricted cgroup or `taskset` do not oversubscribe.
    """
    if hasattr(os, "sched_getaffinity"):
        try:
            return max(1, len(os.sched_getaffinity(0)))
        except OSError:
            logger.debug("Could not read CPU affinity, falling back to total core count")
    return max(1, multiprocessing.cpu_count())

"""Parsing of command line arguments into the execution platform.
"""
import enum

from snppipeline.pipeline.validate import InputError, INVALID_PLATFORM


class Platform(enum.Enum):
    local = "local"
    grid = "grid"
    torque = "torque"

    @property
    def remote(self):
        return self is not Platform.local


def to_platform(job_queue):
    """Convert the requested job queue manager into a platform, defaulting to local runs.
    """
    if job_queue is None:
        return Platform.local
    name = job_queue.lower()
    if name not in (Platform.grid.value, Platform.torque.value):
        raise InputError("Only the torque and grid job queues are currently supported.",
                         INVALID_PLATFORM, show_usage=True)
    return Platform(name)

"""Generalized running of pipeline stages in multiple environments.
"""
import contextlib

from snppipeline.distributed.clargs import Platform
from snppipeline.log import logger


def get_backend_class(platform):
    if platform == Platform.grid:
        from snppipeline.distributed.sge import GridEngine
        return GridEngine
    elif platform == Platform.torque:
        from snppipeline.distributed.torque import Torque
        return Torque
    else:
        from snppipeline.distributed.multi import LocalPool
        return LocalPool

@contextlib.contextmanager
def start(platform, sample_set, dirs, config):
    """Start the execution backend for a run on the selected platform.

    Yields the backend used to run each stage. For scheduler platforms,
    leaving the context only means every stage was submitted.
    """
    backend = get_backend_class(platform)(sample_set, dirs, config)
    logger.info("Running %s samples on %s" % (len(sample_set), platform.value))
    yield backend
    if backend.remote:
        logger.info("All stages submitted to %s; logs will be written to %s"
                    % (platform.value, dirs["log"]))
    else:
        logger.info("All stages finished. Logs are in %s" % dirs["log"])

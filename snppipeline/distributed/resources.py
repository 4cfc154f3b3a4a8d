"""Estimate resources required for each pipeline stage.

Resource hints travel with every submission: thread counts for
multithreaded tools, advisory wall-clock budgets for schedulers, the
extra parameter environment read by the external tools, and local
concurrency limits.
"""
import copy

from snppipeline.log import logger
from snppipeline.pipeline import config_utils

DEFAULT_ALIGN_THREADS = 8

def stage_config(config, remote):
    """Adjust the run configuration for the execution environment.

    Scheduled alignment jobs need a known thread count to reserve cores. When
    the aligner parameters do not request one, ask for the default and pass it
    on to the aligner too.
    """
    config = copy.deepcopy(config)
    if remote:
        align_params = config_utils.get_extra_params("bowtie2_align", config)
        if config_utils.get_parsed_threads(align_params) is None:
            config["extra_params"]["bowtie2_align"] = ("%s -p %s" % (align_params, DEFAULT_ALIGN_THREADS)).strip()
    return config

def calculate(stage, config):
    """Determine resource hints for a stage from the run configuration.
    """
    threads = None
    if stage.threads_param:
        threads = config_utils.get_parsed_threads(config_utils.get_extra_params(stage.threads_param, config))
    out = {"threads": threads,
           "walltime": stage.walltime,
           "env": config_utils.get_extra_params_env(stage.env_params, config),
           "max_concurrent": (config_utils.get_max_concurrent(stage.concurrency_key, config)
                              if stage.concurrency_key else None),
           "after_any": stage.after_any}
    logger.debug("Resource requests for {stage}: threads: {threads}; walltime: {walltime}; "
                 "max concurrent: {max_concurrent}".format(stage=stage.name, **out))
    return out

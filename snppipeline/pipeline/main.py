"""Main entry point for running the SNP pipeline.

Handles ordering the samples, optional mirroring of inputs, and walking the
fixed stage graph on the selected execution backend.
"""
import datetime
import os
import shlex

from snppipeline import log, utils
from snppipeline.distributed import prun, resources
from snppipeline.distributed.clargs import Platform
from snppipeline.log import logger
from snppipeline.pipeline import config_utils, mirror, sample, stages


def run_main(reference_file, work_dir, platform=Platform.local, samples_dir=None,
             sample_dirs_file=None, mirror_mode=None, force=False, config_file=None):
    """Run the pipeline on validated command line inputs.

    Returns the Jobs of every stage keyed by stage name.
    """
    sample_set = sample.organize(work_dir, samples_dir, sample_dirs_file)
    config = config_utils.load_config(config_file)
    dirs = setup_directories(work_dir)
    if mirror_mode:
        reference_file, sample_set = mirror.mirror_inputs(reference_file, sample_set, dirs, mirror_mode)
    handler = log.setup_local_logging(config, dirs["log"])
    try:
        config_utils.write_config(config, dirs["log"], config_file)
        logger.info("Reference: %s" % reference_file)
        logger.info("Samples: %s, listed in %s" % (len(sample_set), sample_set.dirs_file))
        run_info = {"reference": reference_file, "force": force}
        with prun.start(platform, sample_set, dirs, config) as backend:
            return run_stages(stages.STAGES, backend, sample_set, dirs, config, run_info)
    finally:
        handler.pop_application()
        handler.close()

def setup_directories(work_dir, timestamp=None):
    """Retrieve the directories used by a run, creating the timestamped log directory.
    """
    if timestamp is None:
        timestamp = datetime.datetime.now().strftime("%Y%m%d.%H%M%S")
    dirs = {"work": work_dir,
            "log": os.path.join(work_dir, "logs-%s" % timestamp),
            "reference": os.path.join(work_dir, "reference"),
            "samples": os.path.join(work_dir, "samples")}
    utils.safe_makedir(dirs["log"])
    return dirs

def run_stages(stage_list, backend, sample_set, dirs, config, run_info):
    """Walk the stage graph in order, running each stage on the backend.

    Each stage receives the Jobs of its predecessors. The local backend only
    returns once a stage has finished, so a failure stops the walk before any
    later stage starts.
    """
    config = resources.stage_config(config, backend.remote)
    jobs = {}
    for i, stage in enumerate(stage_list, 1):
        logger.info("Step %s - %s" % (i, stage.descr))
        depends_on = [jobs[name] for name in stage.depends_on]
        array_count = len(sample_set) if stage.per_sample else None
        command = bind_command(stage, sample_set, dirs, config, run_info)
        jobs[stage.name] = backend.submit(stage, command, depends_on, array_count,
                                          resources.calculate(stage, config))
    return jobs

def bind_command(stage, sample_set, dirs, config, run_info):
    """Fill in the run wide values of a stage command template.
    """
    force = "-f" if run_info.get("force") and stage.force else ""
    extra = config_utils.get_extra_params(stage.extra_param, config) if stage.extra_param else ""
    return stages.Command(stage.template, force=force,
                          reference=shlex.quote(run_info["reference"]),
                          work_dir=shlex.quote(dirs["work"]),
                          sample_list=shlex.quote(sample_set.dirs_file),
                          extra=extra)

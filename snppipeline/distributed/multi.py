"""Run stages on the local machine using multiple cores.

Per-sample stages run as a batch of independent commands on a bounded pool
of workers; the call returns once every command in the batch has finished.
"""
import os
import shlex
import subprocess

import joblib

from snppipeline.distributed.backend import Backend, Job
from snppipeline.log import logger
from snppipeline.provenance import do, system


class StageFailedError(Exception):
    """One or more commands of a stage exited with a nonzero status.
    """
    def __init__(self, stage, failed):
        self.stage = stage
        self.failed = list(failed)
        if self.failed == [None]:
            msg = "Stage %s failed. See %s.log" % (stage.name, stage.log_name)
        else:
            msg = ("Stage %s failed for sample(s) %s. See %s.log-<index>"
                   % (stage.name, ", ".join(str(x) for x in self.failed), stage.log_name))
        super(StageFailedError, self).__init__(msg)


class LocalPool(Backend):
    """Bounded parallel execution on the current machine.

    A failing command does not stop its siblings: the rest of the batch
    finishes, then the stage fails as a whole.
    """
    def __init__(self, sample_set, dirs, config, cores=None):
        super(LocalPool, self).__init__(sample_set, dirs, config)
        self.cores = cores or system.get_cores()

    def num_workers(self, resources):
        max_concurrent = resources.get("max_concurrent") or self.cores
        return max(1, min(max_concurrent, self.cores))

    def submit(self, stage, command, depends_on, array_count, resources):
        env = os.environ.copy()
        env.update(resources.get("env", {}))
        if array_count is None:
            if not _run_task(stage, command.render(), self.log_file(stage), env):
                raise StageFailedError(stage, [None])
            return Job(None, stage.name, None, ())
        if array_count != len(self.sample_set):
            raise ValueError("Stage %s expanded to %s tasks for %s samples"
                             % (stage.name, array_count, len(self.sample_set)))
        workers = self.num_workers(resources)
        logger.info("multiprocessing: %s on %s samples with %s workers"
                    % (stage.name, array_count, workers))
        tasks = []
        for i in range(1, array_count + 1):
            sample = self.sample_set.get(i)
            cmd = command.render(sample_dir=shlex.quote(sample.path),
                                 sample_reads=" ".join(shlex.quote(x) for x in sample.read_files))
            tasks.append((stage, cmd, self.log_file(stage, i), env))
        results = run_batch(tasks, workers)
        failed = [i for i, ok in enumerate(results, 1) if not ok]
        if failed:
            raise StageFailedError(stage, failed)
        return Job(None, stage.name, array_count, ())


def run_batch(tasks, workers):
    """Run tasks in order on a pool of workers, returning the success of each.
    """
    if workers == 1:
        return [_run_task(*x) for x in tasks]
    return joblib.Parallel(n_jobs=workers, batch_size=1, backend="threading")(
        joblib.delayed(_run_task)(*x) for x in tasks)

def _run_task(stage, cmd, log_file, env):
    try:
        do.run(cmd, stage.descr, log_file=log_file, env=env, log_error=False)
    except subprocess.CalledProcessError as e:
        logger.error("%s failed with exit status %s, see %s" % (stage.name, e.returncode, log_file))
        return False
    return True

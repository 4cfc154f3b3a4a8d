"""Execution backends for pipeline stages.

A backend runs or schedules a stage command once, or once per sample for
per-sample stages, and returns a Job handle for downstream stages to depend
on. The local backend finishes the work before returning; scheduler
backends return as soon as the scheduler has accepted the submission and
leave ordering to the scheduler's own dependency engine.
"""
import abc
import collections
import os
import shlex
import subprocess
import time

from snppipeline.log import logger, logger_cl

Job = collections.namedtuple("Job", ["jobid", "stage", "array_size", "depends_on"])


class SubmissionError(Exception):
    """Scheduler did not accept a job submission.
    """
    pass


class Backend(abc.ABC):
    """Contract for running the stages of a pipeline run.
    """
    remote = False

    def __init__(self, sample_set, dirs, config):
        self.sample_set = sample_set
        self.dirs = dirs
        self.config = config

    @abc.abstractmethod
    def submit(self, stage, command, depends_on, array_count, resources):
        """Run or schedule `command` for a stage.

        array_count is None for single stages and the number of samples for
        per-sample stages; task i (1-based) processes sample i of the sample
        set. depends_on holds the Jobs of the predecessor stages.
        """
        pass

    def log_file(self, stage, index=None):
        fname = "%s.log" % stage.log_name
        if index is not None:
            fname += "-%s" % index
        return os.path.join(self.dirs["log"], fname)


class ScheduledBackend(Backend):
    """Shared job script handling for array job schedulers.

    Subclasses provide the directive syntax, dependency clauses and job id
    parsing for their scheduler.
    """
    remote = True
    directive = None
    task_var = None
    qsub = "qsub"
    # seconds per 150 array tasks to wait between consecutive array submissions
    array_delay_unit = 150

    def __init__(self, sample_set, dirs, config):
        super(ScheduledBackend, self).__init__(sample_set, dirs, config)
        self._last_was_array = False

    def submit(self, stage, command, depends_on, array_count, resources):
        if array_count is not None and self._last_was_array:
            # workaround scheduler bug when submitting two large consecutive array jobs
            time.sleep(1 + array_count // self.array_delay_unit)
        script = self.job_script(stage, command, depends_on, array_count, resources)
        jobid = self._submit(script, array_count, resources)
        self._last_was_array = array_count is not None
        logger.info("Submitted %s as job %s%s" % (stage.name, jobid,
                                                  " (%s tasks)" % array_count if array_count else ""))
        return Job(jobid, stage.name, array_count, tuple(x.jobid for x in depends_on))

    def job_script(self, stage, command, depends_on, array_count, resources):
        lines = ["#!/bin/bash"]
        lines.extend("%s %s" % (self.directive, d)
                     for d in self.directives(stage, depends_on, array_count, resources))
        if array_count is not None:
            lines.extend(self._task_sample_lines())
            lines.append(command.render(sample_dir='"$sampleDir"', sample_reads="$sampleReads"))
        else:
            lines.append(command.render())
        return "\n".join(lines) + "\n"

    def _task_sample_lines(self):
        getline = 'sed -n "${%s}p" %%s' % self.task_var
        return ["sampleDir=$(%s)" % (getline % shlex.quote(self.sample_set.dirs_file)),
                "sampleReads=$(%s)" % (getline % shlex.quote(self.sample_set.reads_file))]

    def _submit(self, script, array_count, resources):
        cl = self.submit_cl(array_count)
        env = os.environ.copy()
        env.update(resources.get("env", {}))
        logger_cl.debug(" ".join(cl) + "\n" + script)
        try:
            out = subprocess.run(cl, input=script, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                 universal_newlines=True, env=env, check=True)
        except OSError as e:
            raise SubmissionError("Could not run %s: %s" % (cl[0], e))
        except subprocess.CalledProcessError as e:
            raise SubmissionError("%s failed with exit status %s: %s"
                                  % (" ".join(cl), e.returncode, (e.stderr or "").strip()))
        jobid = self.parse_jobid(out.stdout)
        if not jobid:
            raise SubmissionError("Could not find a job id in %s output: %s" % (cl[0], out.stdout.strip()))
        return jobid

    def dependency(self, stage, depends_on, array_count):
        """Dependency on the single predecessor job, if any.

        Returns the job token and whether it refers to a whole array. Array
        tokens are reduced to their array identifier so the dependency waits
        for every task.
        """
        if not depends_on:
            return None, False
        if len(depends_on) > 1:
            raise ValueError("Stage %s has more than one predecessor: %s" % (stage.name, depends_on))
        pred = depends_on[0]
        if pred.array_size is not None:
            return array_jobid(pred.jobid), True
        return pred.jobid, False

    def per_index(self, depends_on, array_count):
        """Whether to chain array tasks by index instead of waiting for the whole predecessor.
        """
        return (bool(self.config.get("per_index_dependencies")) and array_count is not None
                and bool(depends_on) and depends_on[0].array_size is not None)

    @abc.abstractmethod
    def directives(self, stage, depends_on, array_count, resources):
        pass

    @abc.abstractmethod
    def submit_cl(self, array_count):
        pass

    @abc.abstractmethod
    def parse_jobid(self, output):
        pass


def array_jobid(jobid):
    return jobid.split(".")[0]

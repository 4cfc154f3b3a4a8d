"""Commandline interaction with SGE cluster schedulers.

Jobs are submitted with `qsub -terse`, which prints only the job id
(`123` for single jobs, `123.1-4:1` for array jobs). Dependent jobs name
their predecessor in `-hold_jid`, so a dependency on an array waits for all
of its tasks.
"""
import re

from snppipeline.distributed.backend import ScheduledBackend

_jobid_pat = re.compile(r"^\s*(?P<jobid>\d+(\.\S+)?)\s*$", re.MULTILINE)


class GridEngine(ScheduledBackend):
    directive = "#$"
    task_var = "SGE_TASK_ID"

    def submit_cl(self, array_count):
        cl = [self.qsub, "-terse"]
        if array_count is not None:
            cl += ["-t", "1-%s" % array_count]
        return cl

    def parse_jobid(self, output):
        match = _jobid_pat.search(output or "")
        return match.group("jobid") if match else None

    def directives(self, stage, depends_on, array_count, resources):
        out = ["-N %s" % stage.job_name, "-cwd", "-V", "-j y"]
        if resources.get("threads"):
            out.append("-pe %s %s" % (self.config.get("grid", {}).get("pe_name", "smp"),
                                       resources["threads"]))
        jobid, _ = self.dependency(stage, depends_on, array_count)
        if jobid:
            if self.per_index(depends_on, array_count):
                out.append("-hold_jid_ad %s" % jobid)
            else:
                out.append("-hold_jid %s" % jobid)
        if resources.get("walltime"):
            out.append("-l h_rt=%s" % resources["walltime"])
        log_file = self.log_file(stage)
        if array_count is not None:
            log_file += "-$TASK_ID"
        out.append("-o %s" % log_file)
        if resources.get("env"):
            out.append("-v %s" % ",".join(sorted(resources["env"].keys())))
        return out

"""Commandline interaction with Torque/PBS schedulers.

`qsub` prints the job id with the server name appended (`123.server`,
`123[].server` for arrays). Dependencies are declared with
`-W depend=<type>:<id>`, where depending on a whole array needs the
`afterokarray` type and the bare array id.
"""
import re

from snppipeline.distributed.backend import ScheduledBackend
from snppipeline.log import logger

_jobid_pat = re.compile(r"^\s*(?P<jobid>\d+(\[\d*\])?(\.\S+)?)\s*$", re.MULTILINE)


class Torque(ScheduledBackend):
    directive = "#PBS"
    task_var = "PBS_ARRAYID"

    def submit_cl(self, array_count):
        cl = [self.qsub]
        if array_count is not None:
            cl += ["-t", "1-%s" % array_count]
        return cl

    def parse_jobid(self, output):
        match = _jobid_pat.search(output or "")
        return match.group("jobid") if match else None

    def directives(self, stage, depends_on, array_count, resources):
        out = ["-N %s" % stage.job_name, "-d %s" % self.dirs["work"], "-j oe"]
        if resources.get("threads"):
            out.append("-l nodes=1:ppn=%s" % resources["threads"])
        jobid, is_array = self.dependency(stage, depends_on, array_count)
        if jobid:
            if self.per_index(depends_on, array_count):
                logger.warning("Torque does not support per-index array dependencies; "
                               "%s waits for the whole predecessor array" % stage.name)
            if is_array:
                dep_type = "afteranyarray" if resources.get("after_any") else "afterokarray"
            else:
                dep_type = "afterany" if resources.get("after_any") else "afterok"
            out.append("-W depend=%s:%s" % (dep_type, jobid))
        if resources.get("walltime"):
            out.append("-l walltime=%s" % resources["walltime"])
        # Torque appends the array index to the output file of each task
        out.append("-o %s" % self.log_file(stage))
        if resources.get("env"):
            out.append("-v %s" % ",".join(sorted(resources["env"].keys())))
        return out

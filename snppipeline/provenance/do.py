"""Centralize running of external commands, providing logging and tracking.
"""
import collections
import os
import subprocess

from snppipeline.log import logger, logger_cl


def run(cmd, descr=None, log_file=None, env=None, log_error=True):
    """Run the provided command, logging details and checking for errors.

    Combined stdout and stderr are tee'd into `log_file` when given, and into
    the debug log. A nonzero exit status raises CalledProcessError.
    """
    if descr:
        logger.debug(descr)
    try:
        logger_cl.debug(" ".join(str(x) for x in cmd) if not isinstance(cmd, str) else cmd)
        _do_run(cmd, log_file, env=env)
    except subprocess.CalledProcessError:
        if log_error:
            logger.exception()
        raise

def find_bash():
    for test_bash in [find_cmd("bash"), "/bin/bash", "/usr/bin/bash", "/usr/local/bin/bash"]:
        if test_bash and os.path.exists(test_bash):
            return test_bash
    raise IOError("Could not find bash in any standard location. Needed for unix pipes")

def find_cmd(cmd):
    try:
        return subprocess.check_output(["which", cmd]).decode().strip()
    except (subprocess.CalledProcessError, OSError):
        return None

def _normalize_cmd_args(cmd):
    """Normalize subprocess arguments to handle list commands, string and pipes.
    Piped commands set pipefail and require use of bash to help with debugging
    intermediate errors.
    """
    if isinstance(cmd, str):
        # check for standard or anonymous named pipes
        if cmd.find(" | ") > 0 or cmd.find(">(") >= 0 or cmd.find("<(") >= 0:
            return "set -o pipefail; " + cmd, True, find_bash()
        else:
            return cmd, True, None
    else:
        return [str(x) for x in cmd], False, None

def _do_run(cmd, log_file=None, env=None):
    """Perform running and check results, raising errors for issues.
    """
    cmd, shell_arg, executable_arg = _normalize_cmd_args(cmd)
    out_handle = open(log_file, "w") if log_file else None
    try:
        s = subprocess.Popen(
            cmd,
            shell=shell_arg,
            executable=executable_arg,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            close_fds=True,
            env=env,
        )
        debug_stdout = collections.deque(maxlen=100)
        for raw in s.stdout:
            line = raw.decode("utf-8", errors="replace")
            debug_stdout.append(line)
            if out_handle:
                out_handle.write(line)
                out_handle.flush()
            if line.rstrip():
                logger.debug(line.rstrip())
        exitcode = s.wait()
        s.stdout.close()
    finally:
        if out_handle:
            out_handle.close()
    if exitcode != 0:
        error_msg = " ".join(cmd) if not isinstance(cmd, str) else cmd
        error_msg += "\n"
        error_msg += "".join(debug_stdout)
        raise subprocess.CalledProcessError(exitcode, error_msg)

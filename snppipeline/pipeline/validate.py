"""Validation of run inputs ahead of any stage submission.

Every failure maps to a fixed exit code so automation wrapping the pipeline
can branch on the failure class.
"""
import os

from snppipeline import utils

INVALID_OPTION = 1
MISSING_OPTION_ARGUMENT = 2
INVALID_REFERENCE = 10
UNEXPECTED_ARGUMENT = 20
INVALID_MIRROR_MODE = 30
INVALID_PLATFORM = 40
INVALID_OUTPUT_DIR = 50
INVALID_SAMPLE_OPTIONS = 60
INVALID_SAMPLES = 70
INVALID_CONFIG = 80
STAGE_FAILED = 100
SUBMISSION_FAILED = 110


class InputError(Exception):
    """Problem with run inputs, carrying the exit code for its failure class.

    `problems` holds every individual issue found; the message joins them one
    per line.
    """
    def __init__(self, problems, exit_code, show_usage=False):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        self.exit_code = exit_code
        self.show_usage = show_usage
        super(InputError, self).__init__("\n".join(self.problems))


def check_reference(reference_file):
    if not reference_file:
        raise InputError("Missing reference file.", INVALID_REFERENCE, show_usage=True)
    if not os.path.isfile(reference_file):
        raise InputError("Reference file %s does not exist." % reference_file, INVALID_REFERENCE)
    if not utils.file_exists(reference_file):
        raise InputError("Reference file %s is empty." % reference_file, INVALID_REFERENCE)
    return os.path.abspath(reference_file)

def check_no_extra_args(extra_args):
    if extra_args:
        raise InputError('Unexpected argument "%s" specified after the reference file.' % extra_args[0],
                         UNEXPECTED_ARGUMENT, show_usage=True)

def check_output_dir(work_dir, remote=False):
    """Create the output directory if needed and make sure we can write to it.

    Scheduler directives carry log paths below the output directory unquoted,
    so remote runs need a path without whitespace.
    """
    work_dir = os.path.abspath(work_dir)
    if remote and any(c.isspace() for c in work_dir):
        raise InputError("Output directory %s contains whitespace, which the job queue manager "
                         "cannot handle." % work_dir, INVALID_OUTPUT_DIR)
    try:
        os.makedirs(work_dir, exist_ok=True)
    except OSError:
        raise InputError("Could not create the output directory %s" % work_dir, INVALID_OUTPUT_DIR)
    if not utils.is_writable(work_dir):
        raise InputError("Output directory %s is not writable." % work_dir, INVALID_OUTPUT_DIR)
    return work_dir

def check_sample_options(samples_dir, sample_dirs_file):
    if samples_dir and sample_dirs_file:
        raise InputError("Options -s and -S are mutually exclusive.", INVALID_SAMPLE_OPTIONS,
                         show_usage=True)
    if not samples_dir and not sample_dirs_file:
        raise InputError("You must specify one of the -s or -S options to identify the samples.",
                         INVALID_SAMPLE_OPTIONS, show_usage=True)

def check_config_file(config_file):
    if config_file is None:
        return None
    if not os.path.isfile(config_file):
        raise InputError("Configuration file %s does not exist." % config_file, INVALID_CONFIG)
    if not utils.file_exists(config_file):
        raise InputError("Configuration file %s is empty." % config_file, INVALID_CONFIG)
    return os.path.abspath(config_file)

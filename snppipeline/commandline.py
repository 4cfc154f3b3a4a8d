"""Run the SNP Pipeline on a specified data set.

Usage:
  run_snp_pipeline.py [-h] [-f] [-m MODE] [-c FILE] [-Q torque|grid] [-o DIR]
                      (-s DIR | -S FILE) referenceFile

Every invalid input terminates the run with a fixed exit code, listed in
`snppipeline.pipeline.validate`, before any stage is started.
"""
import argparse
import os
import sys

from snppipeline import log
from snppipeline.distributed import clargs
from snppipeline.distributed.backend import SubmissionError
from snppipeline.distributed.multi import StageFailedError
from snppipeline.log import logger
from snppipeline.pipeline import mirror, validate, version
from snppipeline.pipeline.main import run_main
from snppipeline.pipeline.validate import InputError

SHORT_USAGE = ('usage: run_snp_pipeline.py [-h] [-f] [-m MODE] [-c FILE] [-Q "torque"|"grid"]  '
               '[-o DIR]  (-s DIR | -S FILE)  referenceFile\n'
               '  -h for detailed help message\n')


class PipelineArgumentParser(argparse.ArgumentParser):
    """Argument parser reporting problems with the pipeline's exit codes.
    """
    def error(self, message):
        if "expected one argument" in message:
            code = validate.MISSING_OPTION_ARGUMENT
        else:
            code = validate.INVALID_OPTION
        sys.stderr.write("%s\n\n%s\n" % (message, SHORT_USAGE))
        sys.exit(code)


def setup_parser():
    description = "Run the SNP Pipeline on a specified data set."
    parser = PipelineArgumentParser(prog="run_snp_pipeline.py", description=description)
    parser.add_argument("reference_file", nargs="?", metavar="referenceFile",
                        help="Relative or absolute path to the reference fasta file.")
    parser.add_argument("extra_args", nargs="*", help=argparse.SUPPRESS)
    parser.add_argument("-f", "--force", action="store_true", default=False,
                        help=("Force processing even when result files already exist and "
                              "are newer than inputs."))
    parser.add_argument("-m", "--mirror", metavar="MODE",
                        help=("Create a mirror copy of the reference directory and all the sample "
                              "directories under the output directory, in 'reference' and "
                              "'samples' subdirectories. soft: symbolic links to the fasta and "
                              "fastq files; hard: hard links; copy: copies of the files."))
    parser.add_argument("-c", "--conf", metavar="FILE", dest="config_file",
                        help=("Relative or absolute path to a YAML configuration file for "
                              "overriding defaults and defining extra parameters for the tools "
                              "and scripts within the pipeline. The configuration used for each "
                              "run is written into the log directory."))
    parser.add_argument("-Q", "--queue-mgr", metavar="torque|grid", dest="job_queue",
                        help=("Job queue manager for remote parallel job execution in an HPC "
                              "environment. If not specified, the pipeline executes locally."))
    parser.add_argument("-o", "--output-dir", metavar="DIR", dest="work_dir", default=None,
                        help=("Output directory for the snp list, snp matrix, and reference snp "
                              "files, created if it does not exist. Defaults to the current "
                              "working directory."))
    parser.add_argument("-s", "--samples-dir", metavar="DIRECTORY", dest="samples_dir",
                        help=("Relative or absolute path to the parent directory of all the "
                              "sample directories. Specify either -s or -S, but not both."))
    parser.add_argument("-S", "--samples-file", metavar="FILE", dest="sample_dirs_file",
                        help=("Relative or absolute path to a file listing all of the sample "
                              "directories. Specify either -s or -S, but not both."))
    parser.add_argument("--version", action="version",
                        version="%(prog)s " + version.__version__)
    return parser

def parse_cl_args(in_args):
    """Parse and validate command line arguments into keyword arguments for run_main.

    Checks happen in a fixed order so each failure class keeps its exit code.
    Sample sources are only scanned later, by the run itself.
    """
    parser = setup_parser()
    args = parser.parse_args(in_args)
    reference_file = validate.check_reference(args.reference_file)
    validate.check_no_extra_args(args.extra_args)
    mirror_mode = mirror.MirrorMode.from_name(args.mirror)
    platform = clargs.to_platform(args.job_queue)
    work_dir = validate.check_output_dir(args.work_dir or os.getcwd(), platform.remote)
    validate.check_sample_options(args.samples_dir, args.sample_dirs_file)
    return {"reference_file": reference_file,
            "work_dir": work_dir,
            "platform": platform,
            "samples_dir": args.samples_dir,
            "sample_dirs_file": args.sample_dirs_file,
            "mirror_mode": mirror_mode,
            "force": args.force,
            "config_file": os.path.abspath(args.config_file) if args.config_file else None}

def main(in_args=None):
    if in_args is None:
        in_args = sys.argv[1:]
    handler = log.setup_local_logging()
    try:
        kwargs = parse_cl_args(in_args)
        run_main(**kwargs)
    except InputError as e:
        sys.stderr.write("%s\n" % e)
        if e.show_usage:
            sys.stderr.write("\n%s\n" % SHORT_USAGE)
        return e.exit_code
    except StageFailedError as e:
        logger.error(str(e))
        return validate.STAGE_FAILED
    except SubmissionError as e:
        logger.error("Job submission failed: %s" % e)
        return validate.SUBMISSION_FAILED
    finally:
        handler.pop_application()
        handler.close()
    return 0

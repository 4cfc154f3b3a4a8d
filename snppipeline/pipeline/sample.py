"""Discover, validate and order the sample directories to process.

Each sample lives in its own directory holding one or more read files
(`*.fastq*` or `*.fq*`, optionally compressed). Samples are processed
largest first so the slowest units of work start early and the tail of
each stage, where fewer jobs than workers remain, stays short.
"""
import collections
import fnmatch
import os

from snppipeline import utils
from snppipeline.distributed.transaction import file_transaction
from snppipeline.log import logger
from snppipeline.pipeline.validate import InputError, INVALID_SAMPLES

READ_PATTERNS = ("*.fastq*", "*.fq*")
SAMPLE_DIRS_FILE = "sampleDirectories.txt"
SAMPLE_READS_FILE = "sampleFullPathNames.txt"

Sample = collections.namedtuple("Sample", ["path", "size", "read_files", "source"])


class SampleSet(object):
    """Ordered samples for a run, with the persisted lists array jobs index into.

    Positions are 1-based, matching scheduler array task ids.
    """
    def __init__(self, samples, dirs_file, reads_file):
        self.samples = list(samples)
        self.dirs_file = dirs_file
        self.reads_file = reads_file

    def __len__(self):
        return len(self.samples)

    def __iter__(self):
        return iter(self.samples)

    def get(self, index):
        if index < 1:
            raise IndexError("Sample indexes start at 1: %s" % index)
        return self.samples[index - 1]

    @property
    def paths(self):
        return [x.path for x in self.samples]


def get_read_files(sample_dir):
    """Retrieve read files directly inside a sample directory.
    """
    out = []
    for fname in os.listdir(sample_dir):
        if any(fnmatch.fnmatch(fname, p) for p in READ_PATTERNS):
            full = os.path.join(sample_dir, fname)
            if os.path.isfile(full):
                out.append(full)
    return sorted(out)

def find_sample_dirs(samples_dir):
    """Retrieve sample directories below a parent directory.

    Only immediate subdirectories containing read files are samples; anything
    else in the parent is ignored.
    """
    samples_dir = samples_dir.rstrip(os.sep) or os.sep
    if not os.path.isdir(samples_dir):
        raise InputError("Samples directory %s does not exist." % samples_dir, INVALID_SAMPLES)
    if utils.dir_is_empty(samples_dir):
        raise InputError("Samples directory %s is empty." % samples_dir, INVALID_SAMPLES)
    out = []
    for name in sorted(os.listdir(samples_dir)):
        cur = os.path.join(samples_dir, name)
        if os.path.isdir(cur) and get_read_files(cur):
            out.append(os.path.abspath(cur))
    if not out:
        raise InputError("Samples directory %s does not contain subdirectories with fastq files."
                         % samples_dir, INVALID_SAMPLES)
    return out

def read_sample_dir_file(sample_dirs_file):
    """Read and validate a file listing one sample directory per line.

    Every entry is checked and all problems are reported together.
    """
    if not os.path.isfile(sample_dirs_file):
        raise InputError("The file of samples directories, %s, does not exist." % sample_dirs_file,
                         INVALID_SAMPLES)
    if not utils.file_exists(sample_dirs_file):
        raise InputError("The file of samples directories, %s, is empty." % sample_dirs_file,
                         INVALID_SAMPLES)
    problems = []
    out = []
    seen = set()
    with open(sample_dirs_file) as in_handle:
        for line in in_handle:
            sample_dir = line.rstrip("\r\n")
            if not sample_dir.strip():
                continue
            problem = _check_sample_dir(sample_dir)
            if problem:
                problems.append(problem)
                continue
            key = os.path.realpath(sample_dir)
            if key in seen:
                logger.warning("Sample directory %s is listed more than once" % sample_dir)
                continue
            seen.add(key)
            out.append(os.path.abspath(sample_dir))
    if problems:
        raise InputError(problems, INVALID_SAMPLES)
    if not out:
        raise InputError("The file of samples directories, %s, does not list any directories."
                         % sample_dirs_file, INVALID_SAMPLES)
    return out

def _check_sample_dir(sample_dir):
    if not os.path.isdir(sample_dir):
        return "Sample directory %s does not exist." % sample_dir
    if utils.dir_is_empty(sample_dir):
        return "Sample directory %s is empty." % sample_dir
    if not get_read_files(sample_dir):
        return "Sample directory %s does not contain any fastq files." % sample_dir
    return None

def sort_by_size(sample_dirs, sources=None):
    """Order samples descending by the total size of their read files.

    Symbolic links count with the size of their target. Input order is first
    normalized by path so equal sizes always come out the same way.
    """
    if sources is None: sources = {}
    samples = []
    for sample_dir in sorted(set(sample_dirs)):
        read_files = get_read_files(sample_dir)
        size = sum(utils.get_size(f) for f in read_files)
        samples.append(Sample(sample_dir, size, read_files, sources.get(sample_dir, sample_dir)))
    return sorted(samples, key=lambda x: x.size, reverse=True)

def persist_sample_set(samples, work_dir):
    """Write the ordered sample directories and their read files to the work directory.
    """
    dirs_file = os.path.join(work_dir, SAMPLE_DIRS_FILE)
    reads_file = os.path.join(work_dir, SAMPLE_READS_FILE)
    with file_transaction(dirs_file, reads_file) as (tx_dirs_file, tx_reads_file):
        with open(tx_dirs_file, "w") as out_handle:
            for sample in samples:
                out_handle.write("%s\n" % sample.path)
        with open(tx_reads_file, "w") as out_handle:
            for sample in samples:
                out_handle.write("%s\n" % " ".join(sample.read_files))
    logger.info("Sorted %s samples by size into %s" % (len(samples), dirs_file))
    return SampleSet(samples, dirs_file, reads_file)

def organize(work_dir, samples_dir=None, sample_dirs_file=None):
    """Build the ordered sample set from either a parent directory or a list file.
    """
    if samples_dir:
        sample_dirs = find_sample_dirs(samples_dir)
    else:
        sample_dirs = read_sample_dir_file(sample_dirs_file)
    return persist_sample_set(sort_by_size(sample_dirs), work_dir)

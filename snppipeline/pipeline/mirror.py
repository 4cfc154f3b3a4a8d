"""Mirror the reference and sample read files into the output directory.

Keeps intermediate files written by the pipeline tools out of the original
reference and sample directories. Files are linked or copied only when the
mirrored file is missing or older than its source.
"""
import enum
import os
import shutil

from snppipeline import utils
from snppipeline.log import logger
from snppipeline.pipeline import sample
from snppipeline.pipeline.validate import InputError, INVALID_MIRROR_MODE


class MirrorMode(enum.Enum):
    # soft links keep the timestamp of the original for later freshness checks
    soft = "soft"
    # hard links and preserving copies carry over the original attributes
    hard = "hard"
    copy = "copy"

    @classmethod
    def from_name(cls, name):
        if name is None:
            return None
        try:
            return cls(name.lower())
        except ValueError:
            raise InputError("Invalid mirror mode: %s" % name.lower(), INVALID_MIRROR_MODE,
                             show_usage=True)


def mirror_file(in_file, out_dir, mode):
    """Link or copy a file into a directory, skipping up to date destinations.
    """
    in_file = os.path.abspath(in_file)
    out_file = os.path.join(out_dir, os.path.basename(in_file))
    if os.path.lexists(out_file):
        if os.path.exists(out_file) and os.path.getmtime(out_file) >= os.path.getmtime(in_file):
            return out_file
        utils.remove_safe(out_file)
    if mode == MirrorMode.soft:
        os.symlink(in_file, out_file)
    elif mode == MirrorMode.hard:
        os.link(in_file, out_file)
    else:
        shutil.copy2(in_file, out_file)
    logger.debug("Mirrored %s -> %s (%s)" % (in_file, out_file, mode.value))
    return out_file

def mirror_reference(reference_file, dirs, mode):
    out_dir = utils.safe_makedir(dirs["reference"])
    return mirror_file(reference_file, out_dir, mode)

def mirror_samples(sample_set, dirs, mode):
    """Mirror each sample's read files into `samples/<sample name>`.

    Returns the mirrored sample set, re-sorted and persisted in place of the
    original lists.
    """
    out_dirs = []
    sources = {}
    for cur in sample_set:
        out_dir = os.path.join(dirs["samples"], os.path.basename(cur.path))
        if out_dir in sources:
            logger.warning("Samples %s and %s share the mirror directory %s"
                           % (sources[out_dir], cur.path, out_dir))
        utils.safe_makedir(out_dir)
        for read_file in cur.read_files:
            mirror_file(read_file, out_dir, mode)
        out_dirs.append(out_dir)
        sources[out_dir] = cur.path
    return sample.persist_sample_set(sample.sort_by_size(out_dirs, sources), dirs["work"])

def mirror_inputs(reference_file, sample_set, dirs, mode):
    logger.info("Mirroring reference and %s samples into %s using %s mode"
                % (len(sample_set), dirs["work"], mode.value))
    reference_file = mirror_reference(reference_file, dirs, mode)
    return reference_file, mirror_samples(sample_set, dirs, mode)

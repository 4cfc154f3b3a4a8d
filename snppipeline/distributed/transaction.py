"""Handle file based transactions allowing safe restarts at any point.

Output files are written to a temporary location next to their final
destination and moved into place when finished, so readers of the sample
lists never see a partially written file.
"""
import contextlib
import os
import shutil
import tempfile

from snppipeline import utils

DEFAULT_TMP = "snppipelinetx"


@contextlib.contextmanager
def tx_tmpdir(base_dir=None, remove=True):
    """Context manager to create and remove a transactional temporary directory.
    """
    base_dir = base_dir or os.getcwd()
    tmpdir_base = utils.get_abspath(os.path.join(base_dir, DEFAULT_TMP))
    utils.safe_makedir(tmpdir_base)
    tmp_dir = tempfile.mkdtemp(dir=tmpdir_base)
    try:
        yield tmp_dir
    finally:
        if remove:
            utils.remove_safe(tmp_dir)
            if os.path.isdir(tmpdir_base) and utils.dir_is_empty(tmpdir_base):
                utils.remove_safe(tmpdir_base)


@contextlib.contextmanager
def file_transaction(*out_files):
    """Wrap file generation in a transaction, moving to output if finishes.
    """
    base_dir = os.path.dirname(os.path.abspath(out_files[0]))
    with tx_tmpdir(base_dir) as tmpdir:
        safe_names = [os.path.join(tmpdir, os.path.basename(f)) for f in out_files]
        if len(safe_names) == 1:
            yield safe_names[0]
        else:
            yield tuple(safe_names)
        for safe, orig in zip(safe_names, out_files):
            if os.path.exists(safe):
                _move_file_with_sizecheck(safe, orig)


def _move_file_with_sizecheck(tx_file, final_file):
    """Move transaction file to final location, with size checks avoiding failed transfers.
    """
    want_size = utils.get_size(tx_file)
    shutil.move(tx_file, final_file)
    transfer_size = utils.get_size(final_file)
    assert want_size == transfer_size, (
        "File copy error: file on temporary storage ({}) size {} bytes does not "
        "equal size of file after transfer ({}) size {} bytes".format(
            tx_file, want_size, final_file, transfer_size))

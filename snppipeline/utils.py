"""Helpful utilities for building analysis pipelines.
"""
import os
import shutil
import time


def safe_makedir(dname):
    """Make a directory if it doesn't exist, handling concurrent race conditions.
    """
    if not dname:
        return dname
    num_tries = 0
    max_tries = 5
    while not os.path.exists(dname):
        # we could get an error here if multiple processes are creating
        # the directory at the same time. Grr, concurrency.
        try:
            os.makedirs(dname)
        except OSError:
            if num_tries > max_tries:
                raise
            num_tries += 1
            time.sleep(2)
    return dname

def file_exists(fname):
    """Check if a file exists and is non-empty.
    """
    try:
        return fname and os.path.exists(fname) and os.path.getsize(fname) > 0
    except OSError:
        return False

def dir_is_empty(dname):
    """Check for a directory with no entries at all, hidden files included.
    """
    with os.scandir(dname) as it:
        return not any(True for _ in it)

def remove_safe(f):
    try:
        if os.path.isdir(f) and not os.path.islink(f):
            shutil.rmtree(f)
        else:
            os.remove(f)
    except OSError:
        pass

def get_abspath(path, pardir=None):
    if pardir is None:
        pardir = os.getcwd()
    path = os.path.expandvars(os.path.expanduser(path))
    return os.path.normpath(os.path.join(pardir, path))

def get_size(path):
    """Size in bytes of a file, following symbolic links like `du -L`.
    """
    return os.stat(path).st_size

def is_writable(dname):
    return os.path.isdir(dname) and os.access(dname, os.W_OK | os.X_OK)

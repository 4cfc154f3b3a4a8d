"""Pytest fixtures and test helper functions"""

import os
import shutil
import tempfile

import pytest

from snppipeline.pipeline import sample

if os.environ.get("SNPPIPELINE_TEST_DIR"):
    SNPPIPELINE_TEST_DIR = os.environ.get("SNPPIPELINE_TEST_DIR")
else:
    SNPPIPELINE_TEST_DIR = tempfile.TemporaryDirectory(prefix="snppipeline_").name

def pytest_addoption(parser):
    parser.addoption('--keep-test-dir', action='store_true', default=False,
                     help='Preserve test output directory after each test')


@pytest.fixture(scope='session')
def test_dir(pytestconfig):
    os.makedirs(SNPPIPELINE_TEST_DIR, exist_ok=True)
    yield SNPPIPELINE_TEST_DIR
    if not pytestconfig.getoption('--keep-test-dir'):
        shutil.rmtree(SNPPIPELINE_TEST_DIR, ignore_errors=True)


@pytest.fixture
def work_dir(test_dir, request, pytestconfig):
    """Provide and manage a fresh directory for each test"""
    test_output_dir = tempfile.mkdtemp(prefix=request.node.name[:40] + "_", dir=test_dir)
    original_dir = os.getcwd()
    os.chdir(test_output_dir)
    yield test_output_dir
    os.chdir(original_dir)
    if not pytestconfig.getoption('--keep-test-dir'):
        shutil.rmtree(test_output_dir, ignore_errors=True)


def _write_file(fname, size=1, content=None):
    """Create a file of the given size, creating parent directories as needed."""
    os.makedirs(os.path.dirname(fname), exist_ok=True)
    with open(fname, "w") as out_handle:
        out_handle.write(content if content is not None else "A" * size)
    return fname


def _make_sample(parent, name, sizes, ext=".fastq"):
    """Create a sample directory holding one read file per size."""
    sample_dir = os.path.join(parent, name)
    os.makedirs(sample_dir, exist_ok=True)
    for i, size in enumerate(sizes, 1):
        _write_file(os.path.join(sample_dir, "%s_%s%s" % (name, i, ext)), size)
    return sample_dir


@pytest.fixture
def reference_file(work_dir):
    return _write_file(os.path.join(work_dir, "inputs", "reference", "ref.fasta"),
                      content=">ref\nACGTACGT\n")


@pytest.fixture
def samples_dir(work_dir):
    """Parent directory with a small sample s1 and a larger sample s2"""
    parent = os.path.join(work_dir, "inputs", "samples")
    _make_sample(parent, "s1", [40000, 60000])
    _make_sample(parent, "s2", [500000], ext=".fq.gz")
    return parent


@pytest.fixture
def out_dir(work_dir):
    out = os.path.join(work_dir, "out")
    os.makedirs(out, exist_ok=True)
    return out


@pytest.fixture
def sample_set(samples_dir, out_dir):
    return sample.organize(out_dir, samples_dir=samples_dir)


@pytest.fixture
def write_file():
    return _write_file


@pytest.fixture
def make_sample():
    return _make_sample

import os
import time

import pytest

from snppipeline.pipeline import mirror, sample
from snppipeline.pipeline.mirror import MirrorMode
from snppipeline.pipeline.validate import InputError, INVALID_MIRROR_MODE


@pytest.fixture
def dirs(out_dir):
    return {"work": out_dir,
            "log": os.path.join(out_dir, "logs"),
            "reference": os.path.join(out_dir, "reference"),
            "samples": os.path.join(out_dir, "samples")}


class TestMirrorMode(object):

    @pytest.mark.parametrize("name, expected", [
        ("soft", MirrorMode.soft),
        ("HARD", MirrorMode.hard),
        ("Copy", MirrorMode.copy),
        (None, None),
    ])
    def test_from_name(self, name, expected):
        assert MirrorMode.from_name(name) == expected

    def test_invalid_mode(self):
        with pytest.raises(InputError) as excinfo:
            MirrorMode.from_name("Junk")
        assert excinfo.value.exit_code == INVALID_MIRROR_MODE
        assert str(excinfo.value) == "Invalid mirror mode: junk"
        assert excinfo.value.show_usage


class TestMirrorFile(object):

    def test_soft_link(self, reference_file, out_dir):
        out_file = mirror.mirror_file(reference_file, out_dir, MirrorMode.soft)
        assert os.path.islink(out_file)
        assert os.readlink(out_file) == os.path.abspath(reference_file)

    def test_hard_link(self, reference_file, out_dir):
        out_file = mirror.mirror_file(reference_file, out_dir, MirrorMode.hard)
        assert not os.path.islink(out_file)
        assert os.stat(out_file).st_ino == os.stat(reference_file).st_ino

    def test_copy_preserves_times(self, reference_file, out_dir):
        old = time.time() - 3600
        os.utime(reference_file, (old, old))
        out_file = mirror.mirror_file(reference_file, out_dir, MirrorMode.copy)
        assert not os.path.islink(out_file)
        assert os.stat(out_file).st_ino != os.stat(reference_file).st_ino
        assert int(os.path.getmtime(out_file)) == int(old)

    def test_skips_up_to_date_destination(self, reference_file, out_dir):
        out_file = mirror.mirror_file(reference_file, out_dir, MirrorMode.copy)
        with open(out_file, "w") as out_handle:
            out_handle.write("kept")
        mirror.mirror_file(reference_file, out_dir, MirrorMode.copy)
        with open(out_file) as in_handle:
            assert in_handle.read() == "kept"

    def test_replaces_stale_destination(self, reference_file, out_dir):
        out_file = mirror.mirror_file(reference_file, out_dir, MirrorMode.copy)
        old = time.time() - 3600
        os.utime(out_file, (old, old))
        mirror.mirror_file(reference_file, out_dir, MirrorMode.soft)
        assert os.path.islink(out_file)


class TestMirrorInputs(object):

    def test_mirrors_reference_and_samples(self, reference_file, sample_set, dirs):
        ref, mirrored = mirror.mirror_inputs(reference_file, sample_set, dirs, MirrorMode.soft)
        assert ref == os.path.join(dirs["reference"], "ref.fasta")
        assert os.path.islink(ref)
        assert mirrored.paths == [os.path.join(dirs["samples"], "s2"),
                                  os.path.join(dirs["samples"], "s1")]
        assert [x.source for x in mirrored] == sample_set.paths
        assert [x.size for x in mirrored] == [500000, 100000]
        for cur in mirrored:
            for read_file in cur.read_files:
                assert os.path.islink(read_file)

    def test_rewrites_sample_lists(self, reference_file, sample_set, dirs):
        _, mirrored = mirror.mirror_inputs(reference_file, sample_set, dirs, MirrorMode.hard)
        assert mirrored.dirs_file == os.path.join(dirs["work"], sample.SAMPLE_DIRS_FILE)
        with open(mirrored.dirs_file) as in_handle:
            assert [x.strip() for x in in_handle] == mirrored.paths
        with open(mirrored.reads_file) as in_handle:
            first = in_handle.readline().strip()
        assert first == os.path.join(dirs["samples"], "s2", "s2_1.fq.gz")

    def test_repeat_run_keeps_mirrors(self, reference_file, sample_set, dirs):
        _, first = mirror.mirror_inputs(reference_file, sample_set, dirs, MirrorMode.copy)
        inodes = [os.stat(f).st_ino for cur in first for f in cur.read_files]
        _, second = mirror.mirror_inputs(reference_file, sample_set, dirs, MirrorMode.copy)
        assert [os.stat(f).st_ino for cur in second for f in cur.read_files] == inodes

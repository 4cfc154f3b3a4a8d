import os
import subprocess

import pytest

from snppipeline.distributed.backend import Backend, Job
from snppipeline.distributed.multi import StageFailedError
from snppipeline.pipeline import config_utils, main, stages
from snppipeline.pipeline.mirror import MirrorMode
from snppipeline.pipeline.validate import InputError, INVALID_CONFIG, INVALID_SAMPLES

STAGE_ORDER = ["prep_reference", "align_samples", "prep_samples", "snp_list", "snp_pileup",
               "snp_matrix", "snp_reference", "collect_metrics", "combine_metrics"]


class RecordingBackend(Backend):
    """Backend remembering each submission in order."""
    def __init__(self, sample_set, dirs, config, remote=False):
        super(RecordingBackend, self).__init__(sample_set, dirs, config)
        self.remote = remote
        self.calls = []

    def submit(self, stage, command, depends_on, array_count, resources):
        self.calls.append((stage, command, depends_on, array_count, resources))
        return Job("%s-id" % stage.name, stage.name, array_count,
                   tuple(x.jobid for x in depends_on))


@pytest.fixture
def dirs(out_dir):
    return main.setup_directories(out_dir, "20240101.120000")


@pytest.fixture
def run_info(reference_file):
    return {"reference": reference_file, "force": False}


def test_setup_directories(out_dir):
    dirs = main.setup_directories(out_dir, "20240101.120000")
    assert dirs["log"] == os.path.join(out_dir, "logs-20240101.120000")
    assert os.path.isdir(dirs["log"])
    assert dirs["samples"] == os.path.join(out_dir, "samples")


class TestRunStages(object):

    def _run(self, sample_set, dirs, run_info, remote=False, config=None):
        config = config or config_utils.load_config()
        backend = RecordingBackend(sample_set, dirs, config, remote)
        jobs = main.run_stages(stages.STAGES, backend, sample_set, dirs, config, run_info)
        return backend, jobs

    def test_stage_order(self, sample_set, dirs, run_info):
        backend, jobs = self._run(sample_set, dirs, run_info)
        assert [x[0].name for x in backend.calls] == STAGE_ORDER
        assert sorted(jobs.keys()) == sorted(STAGE_ORDER)

    def test_per_sample_cardinality(self, sample_set, dirs, run_info):
        backend, _ = self._run(sample_set, dirs, run_info)
        counts = {x[0].name: x[3] for x in backend.calls}
        for name in ["align_samples", "prep_samples", "snp_pileup", "collect_metrics"]:
            assert counts[name] == len(sample_set)
        for name in ["prep_reference", "snp_list", "snp_matrix", "snp_reference", "combine_metrics"]:
            assert counts[name] is None

    def test_predecessors(self, sample_set, dirs, run_info):
        _, jobs = self._run(sample_set, dirs, run_info)
        assert jobs["prep_reference"].depends_on == ()
        assert jobs["snp_list"].depends_on == ("prep_samples-id",)
        assert jobs["snp_matrix"].depends_on == ("snp_pileup-id",)
        assert jobs["snp_reference"].depends_on == ("snp_pileup-id",)
        assert jobs["collect_metrics"].depends_on == ("snp_matrix-id",)

    def test_commands(self, sample_set, dirs, run_info):
        backend, _ = self._run(sample_set, dirs, run_info)
        commands = {x[0].name: x[1] for x in backend.calls}
        assert commands["prep_reference"].render() == "prepReference.sh  %s" % run_info["reference"]
        assert commands["snp_list"].render() == (
            "create_snp_list.py  -n var.flt.vcf -o %s/snplist.txt  %s"
            % (dirs["work"], sample_set.dirs_file))
        assert commands["prep_samples"].render(sample_dir="/s/1").endswith("/s/1")

    def test_force_only_for_stages_that_accept_it(self, sample_set, dirs, run_info):
        run_info["force"] = True
        backend, _ = self._run(sample_set, dirs, run_info)
        commands = {x[0].name: x[1].render(sample_dir="d") for x in backend.calls}
        assert commands["prep_reference"].startswith("prepReference.sh -f ")
        assert commands["snp_matrix"].startswith("create_snp_matrix.py -f ")
        assert " -f " not in commands["collect_metrics"]
        assert " -f " not in commands["combine_metrics"]

    def test_extra_params(self, sample_set, dirs, run_info):
        config = config_utils.load_config()
        config["extra_params"]["create_snp_matrix"] = "-c"
        config["extra_params"]["samtools_sort"] = "-m 1G"
        backend, _ = self._run(sample_set, dirs, run_info, config=config)
        calls = {x[0].name: x for x in backend.calls}
        assert " -c " in calls["snp_matrix"][1].render()
        assert calls["prep_samples"][4]["env"]["SamtoolsSort_ExtraParams"] == "-m 1G"

    def test_remote_alignment_threads(self, sample_set, dirs, run_info):
        backend, _ = self._run(sample_set, dirs, run_info, remote=True)
        align = [x for x in backend.calls if x[0].name == "align_samples"][0]
        assert align[4]["threads"] == 8
        assert align[4]["env"]["Bowtie2Align_ExtraParams"] == "-p 8"

    def test_local_alignment_threads_unset(self, sample_set, dirs, run_info):
        backend, _ = self._run(sample_set, dirs, run_info)
        align = [x for x in backend.calls if x[0].name == "align_samples"][0]
        assert align[4]["threads"] is None
        assert align[4]["max_concurrent"] == 1


class TestRunMain(object):

    @pytest.fixture
    def mock_run(self, mocker):
        yield mocker.patch("snppipeline.distributed.multi.do.run")

    def test_runs_every_stage_locally(self, reference_file, samples_dir, out_dir, mock_run):
        jobs = main.run_main(reference_file, out_dir, samples_dir=samples_dir)
        assert list(jobs.keys()) == STAGE_ORDER
        # 5 single stages and 4 per-sample stages over 2 samples
        assert mock_run.call_count == 5 + 4 * 2
        log_dirs = [x for x in os.listdir(out_dir) if x.startswith("logs-")]
        assert len(log_dirs) == 1
        log_dir = os.path.join(out_dir, log_dirs[0])
        assert os.path.exists(os.path.join(log_dir, config_utils.CONFIG_NAME))
        assert os.path.exists(os.path.join(log_dir, "snppipeline.log"))
        log_files = [x[1]["log_file"] for x in mock_run.call_args_list]
        assert os.path.join(log_dir, "prepReference.log") in log_files
        assert os.path.join(log_dir, "alignSamples.log-2") in log_files

    def test_failed_stage_stops_later_stages(self, reference_file, samples_dir, out_dir, mock_run):
        def _fail_alignment(cmd, *args, **kwargs):
            if cmd.startswith("alignSampleToReference.sh"):
                raise subprocess.CalledProcessError(1, cmd)
        mock_run.side_effect = _fail_alignment
        with pytest.raises(StageFailedError) as excinfo:
            main.run_main(reference_file, out_dir, samples_dir=samples_dir)
        assert excinfo.value.stage.name == "align_samples"
        assert excinfo.value.failed == [1, 2]
        cmds = [x[0][0] for x in mock_run.call_args_list]
        assert not any(x.startswith("prepSamples.sh") for x in cmds)

    def test_mirrors_before_running(self, reference_file, samples_dir, out_dir, mock_run):
        main.run_main(reference_file, out_dir, samples_dir=samples_dir, mirror_mode=MirrorMode.soft)
        first = mock_run.call_args_list[0][0][0]
        assert first.endswith(os.path.join(out_dir, "reference", "ref.fasta"))

    def test_invalid_samples_before_config(self, reference_file, out_dir, work_dir, mocker):
        load = mocker.patch("snppipeline.pipeline.main.config_utils.load_config")
        with pytest.raises(InputError) as excinfo:
            main.run_main(reference_file, out_dir, samples_dir=os.path.join(work_dir, "missing"))
        assert excinfo.value.exit_code == INVALID_SAMPLES
        assert not load.called

    def test_invalid_config_before_logs(self, reference_file, samples_dir, out_dir, work_dir, mock_run):
        with pytest.raises(InputError) as excinfo:
            main.run_main(reference_file, out_dir, samples_dir=samples_dir,
                          config_file=os.path.join(work_dir, "missing.yaml"))
        assert excinfo.value.exit_code == INVALID_CONFIG
        assert not [x for x in os.listdir(out_dir) if x.startswith("logs-")]
        assert not mock_run.called

    def test_passes_stage_environment(self, reference_file, samples_dir, out_dir, mock_run):
        main.run_main(reference_file, out_dir, samples_dir=samples_dir)
        env = mock_run.call_args_list[0][1]["env"]
        assert env["Bowtie2Build_ExtraParams"] == ""
        assert env.get("PATH") == os.environ.get("PATH")

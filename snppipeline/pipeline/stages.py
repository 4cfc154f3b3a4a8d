"""Fixed stage graph of the SNP pipeline.

Stages are listed in execution order. Each names its predecessors, how many
tasks it expands into, the external command it runs and the resource hints
passed to the execution backend.

Command templates are `str.format` strings. Run wide fields (`force`,
`reference`, `work_dir`, `sample_list`, `extra`) are bound by the executor,
per-sample fields (`sample_dir`, `sample_reads`) by the backend, either with
concrete quoted paths or with shell variables set inside a scheduler task.
"""
SINGLE = "single"
PER_SAMPLE = "per-sample"


class Stage(object):
    def __init__(self, name, log_name, cardinality, depends_on, template,
                 env_params=None, extra_param=None, walltime=None, threads_param=None,
                 concurrency_key=None, after_any=False, force=True, descr=None):
        self.name = name
        self.log_name = log_name
        self.job_name = "job.%s" % log_name
        self.cardinality = cardinality
        self.depends_on = list(depends_on)
        self.template = template
        self.env_params = list(env_params or [])
        self.extra_param = extra_param
        self.walltime = walltime
        self.threads_param = threads_param
        self.concurrency_key = concurrency_key
        self.after_any = after_any
        self.force = force
        self.descr = descr or name

    @property
    def per_sample(self):
        return self.cardinality == PER_SAMPLE

    def __repr__(self):
        return "Stage(%s)" % self.name


class Command(object):
    """A stage command with its run wide values bound.
    """
    def __init__(self, template, **values):
        self.template = template
        self.values = values

    def render(self, sample_dir="", sample_reads=""):
        return self.template.format(sample_dir=sample_dir, sample_reads=sample_reads,
                                    **self.values).strip()


STAGES = [
    Stage("prep_reference", "prepReference", SINGLE, [],
          "prepReference.sh {force} {reference}",
          env_params=["bowtie2_build", "samtools_faidx"],
          descr="Prep the reference"),
    Stage("align_samples", "alignSamples", PER_SAMPLE, ["prep_reference"],
          "alignSampleToReference.sh {force} {reference} {sample_reads}",
          env_params=["bowtie2_align"], threads_param="bowtie2_align",
          concurrency_key="align_samples",
          descr="Align the samples to the reference"),
    Stage("prep_samples", "prepSamples", PER_SAMPLE, ["align_samples"],
          "prepSamples.sh {force} {reference} {sample_dir}",
          env_params=["samtools_sam_filter", "samtools_sort", "samtools_mpileup",
                      "varscan_mpileup2snp", "varscan_jvm"],
          walltime="05:00:00", concurrency_key="prep_samples",
          descr="Prep the samples"),
    Stage("snp_list", "snpList", SINGLE, ["prep_samples"],
          "create_snp_list.py {force} -n var.flt.vcf -o {work_dir}/snplist.txt {extra} {sample_list}",
          env_params=["create_snp_list"], extra_param="create_snp_list",
          descr="Combine the SNP positions across all samples into the SNP list file"),
    Stage("snp_pileup", "snpPileup", PER_SAMPLE, ["snp_list"],
          "create_snp_pileup.py {force} -l {work_dir}/snplist.txt -a {sample_dir}/reads.all.pileup "
          "-o {sample_dir}/reads.snp.pileup {extra}",
          env_params=["create_snp_pileup"], extra_param="create_snp_pileup",
          concurrency_key="snp_pileup",
          descr="Create pileups at SNP positions for each sample"),
    Stage("snp_matrix", "snpMatrix", SINGLE, ["snp_pileup"],
          "create_snp_matrix.py {force} -l {work_dir}/snplist.txt -p reads.snp.pileup "
          "-o {work_dir}/snpma.fasta {extra} {sample_list}",
          env_params=["create_snp_matrix"], extra_param="create_snp_matrix",
          walltime="05:00:00",
          descr="Create the SNP matrix"),
    Stage("snp_reference", "snpReference", SINGLE, ["snp_pileup"],
          "create_snp_reference_seq.py {force} -l {work_dir}/snplist.txt "
          "-o {work_dir}/referenceSNP.fasta {extra} {reference}",
          env_params=["create_snp_reference_seq"], extra_param="create_snp_reference_seq",
          descr="Create the reference base sequence"),
    Stage("collect_metrics", "collectSampleMetrics", PER_SAMPLE, ["snp_matrix"],
          "collectSampleMetrics.sh -m {work_dir}/snpma.fasta -o {sample_dir}/metrics {sample_dir}",
          walltime="02:00:00", concurrency_key="collect_metrics", after_any=True, force=False,
          descr="Collect metrics for each sample"),
    Stage("combine_metrics", "combineSampleMetrics", SINGLE, ["collect_metrics"],
          "combineSampleMetrics.sh -n metrics -o {work_dir}/metrics.tsv {sample_list}",
          force=False,
          descr="Combine the metrics across all samples into the metrics table"),
]

def get_stage(name):
    for stage in STAGES:
        if stage.name == name:
            return stage
    raise KeyError("Unknown stage: %s" % name)

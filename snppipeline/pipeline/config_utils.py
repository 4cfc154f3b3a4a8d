"""Loads configurations from .yaml files and expands environment variables.
"""
import copy
import os
import re
import shutil

import toolz as tz
import yaml

from snppipeline.pipeline.validate import InputError, INVALID_CONFIG, check_config_file

CONFIG_NAME = "snppipeline.yaml"

DEFAULT_CONFIG = {
    "extra_params": {
        "bowtie2_build": "",
        "samtools_faidx": "",
        "bowtie2_align": "",
        "samtools_sam_filter": "",
        "samtools_sort": "",
        "samtools_mpileup": "",
        "varscan_mpileup2snp": "",
        "varscan_jvm": "",
        "create_snp_list": "",
        "create_snp_pileup": "",
        "create_snp_matrix": "",
        "create_snp_reference_seq": "",
    },
    # The aligner is multithreaded on its own, run one alignment at a time
    "max_concurrent": {
        "align_samples": 1,
        "prep_samples": None,
        "snp_pileup": None,
        "collect_metrics": None,
    },
    "grid": {"pe_name": "smp"},
    "per_index_dependencies": False,
    "include_time": True,
}

# Environment variable names read by the external tools
EXTRA_PARAM_ENV = {
    "bowtie2_build": "Bowtie2Build_ExtraParams",
    "samtools_faidx": "SamtoolsFaidx_ExtraParams",
    "bowtie2_align": "Bowtie2Align_ExtraParams",
    "samtools_sam_filter": "SamtoolsSamFilter_ExtraParams",
    "samtools_sort": "SamtoolsSort_ExtraParams",
    "samtools_mpileup": "SamtoolsMpileup_ExtraParams",
    "varscan_mpileup2snp": "VarscanMpileup2snp_ExtraParams",
    "varscan_jvm": "VarscanJvm_ExtraParams",
    "create_snp_list": "CreateSnpList_ExtraParams",
    "create_snp_pileup": "CreateSnpPileup_ExtraParams",
    "create_snp_matrix": "CreateSnpMatrix_ExtraParams",
    "create_snp_reference_seq": "CreateSnpReferenceSeq_ExtraParams",
}

_threads_pat = re.compile(r"(-p\s*)(\d+)")

# ## Retrieval functions

def load_config(config_file=None):
    """Load YAML config file, replacing environmental variables.

    Values missing from the file fall back to the defaults.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_file is None:
        return config
    check_config_file(config_file)
    try:
        with open(config_file) as in_handle:
            user_config = yaml.safe_load(in_handle)
    except yaml.YAMLError as e:
        raise InputError("Configuration file %s is not valid YAML: %s" % (config_file, e),
                         INVALID_CONFIG)
    if not isinstance(user_config, dict):
        raise InputError("Configuration file %s does not contain a YAML mapping." % config_file,
                         INVALID_CONFIG)
    config = _merge(config, _expand_paths(user_config))
    problems = _check_config(config)
    if problems:
        raise InputError(["Configuration file %s: %s" % (config_file, x) for x in problems],
                         INVALID_CONFIG)
    return config

def _check_config(config):
    """Retrieve problems with the types of configuration values.
    """
    problems = []
    for section in ["extra_params", "max_concurrent", "grid"]:
        if not isinstance(config.get(section), dict):
            problems.append("%s must be a mapping" % section)
    if not problems:
        for name, val in config["extra_params"].items():
            if isinstance(val, (dict, list)):
                problems.append("extra_params %s must be a string" % name)
        for name, val in config["max_concurrent"].items():
            if val is not None and (isinstance(val, bool) or not isinstance(val, int) or val < 1):
                problems.append("max_concurrent %s must be a positive integer" % name)
        if not isinstance(config["grid"].get("pe_name"), str) or not config["grid"]["pe_name"]:
            problems.append("grid pe_name must be a string")
    return problems

def _merge(base, update):
    out = copy.deepcopy(base)
    for k, v in update.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out

def _expand_paths(config):
    for field, setting in config.items():
        if isinstance(config[field], dict):
            config[field] = _expand_paths(config[field])
        else:
            config[field] = expand_path(setting)
    return config

def expand_path(path):
    """ Combines os.path.expandvars with replacing ~ with $HOME.
    """
    try:
        return os.path.expandvars(path.replace("~", "$HOME"))
    except AttributeError:
        return path

def write_config(config, log_dir, config_file=None):
    """Capture the parameters used for a run inside the log directory.

    A user supplied file is copied as is, next to the fully resolved
    configuration.
    """
    if config_file:
        shutil.copy2(config_file, log_dir)
    out_file = os.path.join(log_dir, CONFIG_NAME)
    if config_file and os.path.basename(config_file) == CONFIG_NAME:
        out_file = os.path.join(log_dir, "%s-resolved%s" % os.path.splitext(CONFIG_NAME))
    with open(out_file, "w") as out_handle:
        yaml.safe_dump(config, out_handle, default_flow_style=False, allow_unicode=False)
    return out_file

def get_extra_params(name, config):
    """Retrieve the extra parameter string for a tool, empty if unset.
    """
    val = tz.get_in(["extra_params", name], config)
    return "" if val is None else str(val)

def get_extra_params_env(names, config):
    """Environment variables carrying extra parameters for the given tools.
    """
    return {EXTRA_PARAM_ENV[name]: get_extra_params(name, config) for name in names}

def get_max_concurrent(name, config):
    val = tz.get_in(["max_concurrent", name], config)
    return int(val) if val else None

def get_parsed_threads(params):
    """Number of threads requested with `-p N` in a parameter string, if any.
    """
    match = _threads_pat.search(params or "")
    return int(match.group(2)) if match else None

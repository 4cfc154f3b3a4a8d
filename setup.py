#!/usr/bin/env python

"""Setup file and install script for the SNP pipeline orchestrator"""

import os
import subprocess

import setuptools

VERSION = '1.0.0'

# add version number and git commit hash of the current revision to version.py
try:
    git_run = subprocess.run(['git', 'rev-parse', '--short', 'HEAD'], stdout=subprocess.PIPE,
                             stderr=subprocess.DEVNULL)
    git_run.check_returncode()
except (OSError, subprocess.SubprocessError):
    commit_hash = ''
else:
    commit_hash = git_run.stdout.strip().decode()

here = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(here, 'snppipeline', 'pipeline', 'version.py'), 'w') as version_file:
    version_file.writelines([f'__version__ = "{VERSION}"\n',
                             f'__git_revision__ = "{commit_hash}"\n'])

# the aligner, samtools, VarScan and the cfsan_snp_pipeline tools are expected on PATH
setuptools.setup(name='snppipeline',
                 version=VERSION,
                 description='Orchestrates the SNP pipeline stages locally or on an HPC job scheduler',
                 packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
                 scripts=['scripts/run_snp_pipeline.py'],
                 entry_points={'console_scripts': [
                     'run_snp_pipeline = snppipeline.commandline:main']},
                 install_requires=['logbook', 'PyYAML', 'toolz', 'joblib'],
                 extras_require={'test': ['pytest', 'pytest-mock', 'mock']},
                 python_requires='>=3.6')

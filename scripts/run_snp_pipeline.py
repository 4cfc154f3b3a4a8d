#!/usr/bin/env python -Es
"""Run the SNP Pipeline on a specified data set.

Aligns the reads of every sample to a reference, calls SNPs per sample and
combines them into a SNP matrix and per-sample SNP sequences, either locally
or by submitting jobs to a Grid Engine or Torque cluster.

Usage:
  run_snp_pipeline.py [-f] [-m MODE] [-c FILE] [-Q torque|grid] [-o DIR]
                      (-s DIR | -S FILE) <referenceFile>
     -m mirror inputs under the output directory (soft, hard, copy)
     -c YAML configuration file with extra tool parameters
     -Q job queue manager for remote execution (torque, grid)
     -s parent directory of all sample directories
     -S file listing the sample directories, one per line
"""
import sys

from snppipeline.commandline import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

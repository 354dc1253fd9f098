"""
vcfwindows: windowed population-genetics statistics from VCF files.

This package splits each contig of an all-sites VCF into fixed-size
windows and computes per-sample heterozygosity counts, per-population
diversity, pairwise divergence, transition/transversion statistics and
linkage disequilibrium summaries for every window.
"""

__version__ = "1.0.0"
__author__ = "vcfwindows Authors"

from vcfwindows.core.models import Contig, GenotypeRow, Window, WindowResult

__all__ = ["Contig", "GenotypeRow", "Window", "WindowResult", "__version__"]

"""Statistical calculations for vcfwindows.

This module provides the allele-frequency arithmetic shared by the
diversity, divergence and transition/transversion statistics. All
functions work on numpy arrays with one row per site; undefined values
are carried as NaN and never silently turned into zeros.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from vcfwindows.core.genotypes import N_ALLELE_CLASSES

if TYPE_CHECKING:
    from collections.abc import Sequence


def count_alleles(
    alleles: np.ndarray,
    columns: Sequence[int],
    ploidy: int = 2,
) -> np.ndarray:
    """Count allele observations per site for a group of samples.

    Args:
        alleles: int array (sites, samples, 2) of allele indices, -1 for
            no observation.
        columns: Sample columns belonging to the group.
        ploidy: Allele observations per call (2 diploid, 1 haploid).

    Returns:
        int64 array (sites, 5): counts of alleles 0-3, then the number
        of missing allele observations.
    """
    n_sites = alleles.shape[0]
    counts = np.zeros((n_sites, N_ALLELE_CLASSES + 1), dtype=np.int64)
    if n_sites == 0 or len(columns) == 0:
        return counts

    group = alleles[:, list(columns), :ploidy].reshape(n_sites, -1)
    for allele in range(N_ALLELE_CLASSES):
        counts[:, allele] = np.count_nonzero(group == allele, axis=1)
    counts[:, N_ALLELE_CLASSES] = group.shape[1] - counts[:, :N_ALLELE_CLASSES].sum(axis=1)
    return counts


def allele_frequencies(counts: np.ndarray) -> np.ndarray:
    """Convert allele counts into frequency vectors.

    Args:
        counts: Array (sites, >=4) from count_alleles; only the first
            four columns are used.

    Returns:
        float64 array (sites, 4). Rows with zero called alleles are
        all-NaN.

    Examples:
        >>> allele_frequencies(np.array([[3, 1, 0, 0, 0]]))
        array([[0.75, 0.25, 0.  , 0.  ]])
    """
    called = counts[:, :N_ALLELE_CLASSES].astype(np.float64)
    total = called.sum(axis=1, keepdims=True)
    freqs = np.full(called.shape, np.nan, dtype=np.float64)
    np.divide(called, total, out=freqs, where=total > 0)
    return freqs


def defined_sites(freqs: np.ndarray) -> np.ndarray:
    """Boolean mask of sites with a defined frequency vector."""
    return ~np.isnan(freqs).any(axis=-1)


def fixed_sites(freqs: np.ndarray) -> np.ndarray:
    """Boolean mask of sites where exactly one allele has frequency 1.

    Undefined (NaN) rows are never fixed.
    """
    return np.count_nonzero(freqs == 1.0, axis=-1) == 1


def site_similarity(freqs: np.ndarray) -> np.ndarray:
    """Probability that two alleles drawn from one population are identical.

    This is the sum of squared allele frequencies, i.e. one minus the
    expected heterozygosity. NaN where the frequency vector is undefined.

    Examples:
        >>> site_similarity(np.array([[0.75, 0.25, 0.0, 0.0]]))
        array([0.625])
    """
    return np.sum(freqs * freqs, axis=-1)


def site_identity_between(freqs1: np.ndarray, freqs2: np.ndarray) -> np.ndarray:
    """Probability that one allele from each population is identical.

    NaN where either frequency vector is undefined.
    """
    return np.sum(freqs1 * freqs2, axis=-1)


def mean_defined(values: np.ndarray) -> float:
    """Mean over finite values.

    Args:
        values: 1-D array, possibly containing NaN.

    Returns:
        Mean of the finite values, or NaN if there are none.

    Examples:
        >>> mean_defined(np.array([1.0, np.nan, 0.5]))
        0.75
        >>> math.isnan(mean_defined(np.array([np.nan])))
        True
    """
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return math.nan
    return float(np.mean(finite))

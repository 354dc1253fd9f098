"""Per-sample genotype counts per window."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from vcfwindows.core.models import GenotypeState, SampleWindowCounts

if TYPE_CHECKING:
    from vcfwindows.core.genotypes import GenotypeMatrix
    from vcfwindows.core.models import Window


def aggregate_sample_counts(
    matrix: GenotypeMatrix,
    window: Window,
) -> list[SampleWindowCounts]:
    """Fold a window's classified calls into one count record per sample.

    Sites missing from the VCF inside the window count as missing for
    every sample, so ``n_missing + n_called`` always equals the window
    size.

    Args:
        matrix: Classified calls of the window (sites x samples).
        window: The window the calls belong to.

    Returns:
        One SampleWindowCounts per sample column, in column order.

    Example:
        >>> counts = aggregate_sample_counts(matrix, Window("chr1", 1, 4))
        >>> counts[0].n_called, counts[0].n_het
        (3, 1)
    """
    states = matrix.states
    n_called = np.count_nonzero(states != GenotypeState.MISSING, axis=0)
    n_het = np.count_nonzero(states == GenotypeState.HET, axis=0)
    n_hom_alt = np.count_nonzero(states == GenotypeState.HOM_ALT, axis=0)

    return [
        SampleWindowCounts(
            n_missing=window.size_bp - int(called),
            n_called=int(called),
            n_het=int(het),
            n_hom_alt=int(hom_alt),
        )
        for called, het, hom_alt in zip(n_called, n_het, n_hom_alt)
    ]


class SampleStatsAggregator:
    """Sample statistics with a sample order fixed at run start.

    Args:
        samples: Sample names in VCF header order.
    """

    def __init__(self, samples: list[str]) -> None:
        self.samples = list(samples)

    @property
    def n_samples(self) -> int:
        return len(self.samples)

    def aggregate(self, matrix: GenotypeMatrix, window: Window) -> list[SampleWindowCounts]:
        """Count genotypes for every sample in one window.

        Raises:
            ValueError: If the matrix does not have one column per sample.
        """
        if matrix.states.shape[1] != self.n_samples:
            raise ValueError(
                f"Genotype matrix has {matrix.states.shape[1]} samples, "
                f"expected {self.n_samples}"
            )
        return aggregate_sample_counts(matrix, window)

"""Population allele frequencies, diversity and divergence.

Samples are grouped into populations once at run start. For every
window the variable sites are turned into a ``(sites, populations, 4)``
allele-frequency matrix, from which the per-population diversity (pi)
and per-pair divergence (Dxy) are derived.

Both statistics are identity probabilities: pi is the chance that two
alleles drawn from one population are the same, Dxy the chance that one
allele from each population is the same.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import combinations
from typing import TYPE_CHECKING

import numpy as np

from vcfwindows.core.genotypes import N_ALLELE_CLASSES
from vcfwindows.core.models import PopulationPairStats, WindowPopulationStats
from vcfwindows.core.stats import (
    allele_frequencies,
    count_alleles,
    defined_sites,
    fixed_sites,
    mean_defined,
    site_identity_between,
    site_similarity,
)
from vcfwindows.utils.logging import get_logger
from vcfwindows.utils.validation import ValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = get_logger(__name__)


@dataclass(frozen=True)
class PopulationLayout:
    """Fixed mapping of populations to VCF sample columns.

    Attributes:
        names: Population labels, sorted; population ``i`` is reported
            as number ``i + 1``.
        columns: Sample column indices of each population.
    """

    names: tuple[str, ...]
    columns: tuple[tuple[int, ...], ...]
    pairs: tuple[tuple[int, int], ...] = field(init=False)

    def __post_init__(self) -> None:
        if len(self.names) != len(self.columns):
            raise ValueError("names and columns must have the same length")
        object.__setattr__(
            self, "pairs", tuple(combinations(range(len(self.names)), 2))
        )

    @property
    def n_populations(self) -> int:
        return len(self.names)

    @classmethod
    def from_mapping(
        cls,
        samples: Sequence[str],
        mapping: Mapping[str, str],
    ) -> PopulationLayout:
        """Group VCF sample columns by population label.

        Args:
            samples: Sample names in VCF header order.
            mapping: Sample name to population label.

        Returns:
            PopulationLayout with lexicographically sorted labels.

        Raises:
            ValidationError: If the mapping is empty or a population has
                no sample present in the VCF.
        """
        if not mapping:
            raise ValidationError("Population mapping is empty")

        present = set(samples)
        absent = sorted(s for s in mapping if s not in present)
        if absent:
            logger.warning(
                f"{len(absent)} sample(s) in the population file are not in the VCF: "
                f"{', '.join(absent[:5])}{' ...' if len(absent) > 5 else ''}"
            )

        names = tuple(sorted(set(mapping.values())))
        columns = []
        for name in names:
            cols = tuple(i for i, s in enumerate(samples) if mapping.get(s) == name)
            if not cols:
                raise ValidationError(
                    f"Population '{name}' has no samples in the VCF\n\n"
                    f"Hint: Sample names are case-sensitive. "
                    f"Use 'vcfwindows samples --vcf <file>' to list all samples."
                )
            columns.append(cols)

        for name, cols in zip(names, columns):
            logger.debug(f"Population {name}: {len(cols)} sample(s)")

        return cls(names=names, columns=tuple(columns))

    @classmethod
    def single(cls, samples: Sequence[str], name: str = "all") -> PopulationLayout:
        """Layout with every sample in one population."""
        return cls(names=(name,), columns=(tuple(range(len(samples))),))


class AlleleFrequencyCalculator:
    """Per-site, per-population allele frequency vectors.

    Args:
        layout: Population layout.
        ploidy: 2 for diploid data, 1 for haploid data.
    """

    def __init__(self, layout: PopulationLayout, ploidy: int = 2) -> None:
        self.layout = layout
        self.ploidy = ploidy

    def frequencies(self, alleles: np.ndarray) -> np.ndarray:
        """Compute the frequency matrix for a set of sites.

        Args:
            alleles: int array (sites, samples, 2) of allele indices.

        Returns:
            float64 array (sites, populations, 4); a population with no
            called allele at a site has an all-NaN vector there.
        """
        n_sites = alleles.shape[0]
        freqs = np.empty(
            (n_sites, self.layout.n_populations, N_ALLELE_CLASSES), dtype=np.float64
        )
        for p, cols in enumerate(self.layout.columns):
            counts = count_alleles(alleles, cols, ploidy=self.ploidy)
            freqs[:, p, :] = allele_frequencies(counts)
        return freqs


def population_window_stats(freqs: np.ndarray) -> list[WindowPopulationStats]:
    """Diversity and polymorphism counts for each population.

    Args:
        freqs: Frequency matrix (sites, populations, 4) of the window's
            variable sites.

    Returns:
        One WindowPopulationStats per population. ``pi`` is NaN when the
        population has no defined site in the window.

    Examples:
        >>> freqs = np.array([[[0.75, 0.25, 0.0, 0.0]]])
        >>> population_window_stats(freqs)[0].pi
        0.625
    """
    results = []
    for p in range(freqs.shape[1]):
        pop = freqs[:, p, :]
        defined = defined_sites(pop)
        fixed = fixed_sites(pop)
        results.append(
            WindowPopulationStats(
                n_poly=int(np.count_nonzero(defined & ~fixed)),
                n_mono=int(np.count_nonzero(fixed)),
                n_missing_sites=int(np.count_nonzero(~defined)),
                pi=mean_defined(site_similarity(pop)),
            )
        )
    return results


def pair_divergence(freqs: np.ndarray, pop1: int, pop2: int) -> float:
    """Mean between-population identity (Dxy) for one pair.

    Sites where either population is undefined are excluded.

    Returns:
        Dxy, or NaN if no site is defined in both populations.
    """
    return mean_defined(site_identity_between(freqs[:, pop1, :], freqs[:, pop2, :]))


def pair_stats(freqs: np.ndarray, layout: PopulationLayout) -> list[PopulationPairStats]:
    """Dxy for every population pair, in layout pair order."""
    return [
        PopulationPairStats(dxy=pair_divergence(freqs, i, j)) for i, j in layout.pairs
    ]

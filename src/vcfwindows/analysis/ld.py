"""Window-level linkage disequilibrium summaries.

Pairwise r² values come from a correlation source; the default one
computes genotype correlations the way ``vcftools --geno-r2`` does, so
the summary can be produced without external tools.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import TYPE_CHECKING, Protocol

import numpy as np

from vcfwindows.core.genotypes import genotype_field
from vcfwindows.core.models import MONOMORPHIC_ALT, LDPair, LDSummary
from vcfwindows.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from vcfwindows.core.models import GenotypeRow

logger = get_logger(__name__)

# Alt-allele dosage and ploidy per GT token of a biallelic site
DOSAGES = {
    "0/0": (0, 2),
    "0/1": (1, 2),
    "1/0": (1, 2),
    "1/1": (2, 2),
    "0": (0, 1),
    "1": (1, 1),
}


class LDEmptyPolicy(str, Enum):
    """Output for windows without any valid site pair."""

    EMIT = "emit"
    OMIT = "omit"


class CorrelationSource(Protocol):
    """Anything that yields pairwise r² for the rows of a window."""

    def pairs(self, rows: Sequence[GenotypeRow]) -> list[LDPair]: ...


def _dosage_vector(row: GenotypeRow) -> tuple[np.ndarray, int, int]:
    """Alt dosages of one row (NaN where not called) plus alt and total counts."""
    dosage = np.full(len(row.genotypes), np.nan)
    alt_count = 0
    total = 0
    for k, token in enumerate(row.genotypes):
        entry = DOSAGES.get(genotype_field(token))
        if entry is None:
            continue
        dosage[k] = entry[0]
        alt_count += entry[0]
        total += entry[1]
    return dosage, alt_count, total


def genotype_r2(x: np.ndarray, y: np.ndarray) -> float:
    """Squared Pearson correlation over samples called at both sites.

    Returns:
        r², or NaN if fewer than two samples are shared or either site
        has no variance among them.

    Examples:
        >>> genotype_r2(np.array([0.0, 1.0, 2.0]), np.array([0.0, 1.0, 2.0]))
        1.0
    """
    both = ~(np.isnan(x) | np.isnan(y))
    if np.count_nonzero(both) < 2:
        return math.nan
    xs = x[both] - x[both].mean()
    ys = y[both] - y[both].mean()
    denom = float(np.sum(xs * xs) * np.sum(ys * ys))
    if denom == 0.0:
        return math.nan
    return float(np.sum(xs * ys) ** 2 / denom)


class GenotypeCorrelationSource:
    """Genotype r² between nearby biallelic sites of a window.

    Sites qualify when they carry a single ALT allele and a minor
    allele count of at least ``min_mac``; every pair of qualifying sites
    at most ``max_distance_bp`` apart is reported.

    Args:
        max_distance_bp: Maximum distance between paired sites.
        min_mac: Minimum minor allele count.
    """

    def __init__(self, max_distance_bp: int = 1000, min_mac: int = 12) -> None:
        self.max_distance_bp = max_distance_bp
        self.min_mac = min_mac

    def _qualifying(self, rows: Sequence[GenotypeRow]) -> list[tuple[int, np.ndarray]]:
        sites = []
        for row in rows:
            if row.alt == MONOMORPHIC_ALT or "," in row.alt:
                continue
            dosage, alt_count, total = _dosage_vector(row)
            if min(alt_count, total - alt_count) < self.min_mac:
                continue
            sites.append((row.pos, dosage))
        sites.sort(key=lambda site: site[0])
        return sites

    def pairs(self, rows: Sequence[GenotypeRow]) -> list[LDPair]:
        """Compute r² for every qualifying site pair in ``rows``."""
        sites = self._qualifying(rows)
        result = []
        for i, (pos1, x) in enumerate(sites):
            for pos2, y in sites[i + 1 :]:
                if pos2 - pos1 > self.max_distance_bp:
                    break
                result.append(LDPair(pos1=pos1, pos2=pos2, r2=genotype_r2(x, y)))
        return result


def summarize_ld(pairs: Iterable[LDPair], n_snps: int) -> LDSummary:
    """Aggregate pairwise r² into a window summary.

    Pairs with a non-finite r² are dropped before averaging.

    Args:
        pairs: Pairwise correlations of the window.
        n_snps: Variable sites in the window.

    Returns:
        LDSummary; mean distance and mean r² are NaN without valid pairs.
    """
    valid = [p for p in pairs if math.isfinite(p.r2)]
    if not valid:
        return LDSummary(n_snps=n_snps, n_pairs=0)
    return LDSummary(
        n_snps=n_snps,
        n_pairs=len(valid),
        mean_distance=float(np.mean([p.distance for p in valid])),
        mean_r2=float(np.mean([p.r2 for p in valid])),
    )


class LDAggregator:
    """Window LD summaries with an empty-window policy.

    Args:
        source: Correlation source for the window rows.
        empty_policy: What to report for windows without valid pairs.
    """

    def __init__(
        self,
        source: CorrelationSource,
        empty_policy: LDEmptyPolicy = LDEmptyPolicy.EMIT,
    ) -> None:
        self.source = source
        self.empty_policy = LDEmptyPolicy(empty_policy)

    def summarize(self, rows: Sequence[GenotypeRow], n_snps: int) -> LDSummary | None:
        """Summarize LD for one window.

        Returns:
            The summary, or None when the window has no valid pair and
            the policy is ``omit``.
        """
        summary = summarize_ld(self.source.pairs(rows), n_snps)
        if summary.n_pairs == 0 and self.empty_policy is LDEmptyPolicy.OMIT:
            return None
        return summary

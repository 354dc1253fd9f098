"""Transition/transversion partitioned diversity and divergence."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from vcfwindows.core.stats import mean_defined

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vcfwindows.analysis.populations import PopulationLayout
    from vcfwindows.core.models import GenotypeRow, PopulationPairStats

TRANSITION = "ts"
TRANSVERSION = "tv"

TRANSITIONS = frozenset({frozenset("AG"), frozenset("CT")})
TRANSVERSIONS = frozenset(
    {frozenset("AC"), frozenset("AT"), frozenset("CG"), frozenset("GT")}
)


def classify_substitution(ref: str, alt: str) -> str | None:
    """Classify a single-base substitution.

    Args:
        ref: Reference allele.
        alt: Raw ALT column.

    Returns:
        ``"ts"`` for a transition, ``"tv"`` for a transversion, None for
        anything else (indels, multiallelic sites, ambiguity codes).

    Examples:
        >>> classify_substitution("A", "g")
        'ts'
        >>> classify_substitution("C", "G")
        'tv'
        >>> classify_substitution("A", "C,T") is None
        True
    """
    if len(ref) != 1 or len(alt) != 1:
        return None
    bases = frozenset((ref.upper(), alt.upper()))
    if bases in TRANSITIONS:
        return TRANSITION
    if bases in TRANSVERSIONS:
        return TRANSVERSION
    return None


def _pair_means(fa1, fb1, fa2, fb2) -> tuple[float, float]:
    both = ~(np.isnan(fa1) | np.isnan(fa2))
    if not np.any(both):
        return float("nan"), float("nan")
    within = fa1[both] * fb1[both] + fa2[both] * fb2[both]
    between = fa1[both] * fb2[both] + fb1[both] * fa2[both]
    return mean_defined(within), mean_defined(between)


def tstv_pair_stats(
    rows: Sequence[GenotypeRow],
    freqs: np.ndarray,
    layout: PopulationLayout,
    pair_stats: list[PopulationPairStats],
) -> tuple[int, int]:
    """Fill the ts/tv fields of each pair's statistics.

    With allele a the reference and allele b the first alternate, the
    within-population term is ``f_a1*f_b1 + f_a2*f_b2`` and the
    between-population term is ``f_a1*f_b2 + f_b1*f_a2``; each is
    averaged separately over transition and transversion sites that are
    defined in both populations.

    Args:
        rows: The window's variable rows, aligned with ``freqs``.
        freqs: Frequency matrix (sites, populations, 4).
        layout: Population layout.
        pair_stats: Pair statistics in layout pair order, updated in place.

    Returns:
        Tuple of (n_ts, n_tv) classified site counts.
    """
    classes = [classify_substitution(r.ref, r.alt) for r in rows]
    is_ts = np.array([c == TRANSITION for c in classes], dtype=bool)
    is_tv = np.array([c == TRANSVERSION for c in classes], dtype=bool)

    for (i, j), stats in zip(layout.pairs, pair_stats):
        for mask, kind in ((is_ts, TRANSITION), (is_tv, TRANSVERSION)):
            sub = freqs[mask]
            mean_pop, pair = _pair_means(sub[:, i, 0], sub[:, i, 1], sub[:, j, 0], sub[:, j, 1])
            if kind == TRANSITION:
                stats.mean_pop_ts, stats.pair_ts = mean_pop, pair
            else:
                stats.mean_pop_tv, stats.pair_tv = mean_pop, pair

    return int(np.count_nonzero(is_ts)), int(np.count_nonzero(is_tv))

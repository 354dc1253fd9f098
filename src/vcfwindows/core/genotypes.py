"""Genotype token classification for vcfwindows.

This module turns raw VCF sample fields such as ``0/1:20,30:50:99``
into categorical calls, and collects the calls of a window into numpy
matrices shared by the per-sample and per-population statistics.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING

import numpy as np

from vcfwindows.core.models import GenotypeMode, GenotypeState
from vcfwindows.utils.errors import MalformedGenotypeError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vcfwindows.core.models import GenotypeRow

# Number of allele classes tracked per site (REF plus up to three ALTs)
N_ALLELE_CLASSES = 4

MISSING_TOKENS = frozenset({"./."})
HAPLOID_MISSING_TOKENS = frozenset({".", "./."})

HET_TOKENS = {
    GenotypeMode.BIALLELIC: frozenset({"0/1"}),
    GenotypeMode.MULTIALLELIC: frozenset({"0/1", "0/2", "0/3", "1/2", "1/3", "2/3"}),
}
HOM_ALT_TOKENS = {
    GenotypeMode.BIALLELIC: frozenset({"1/1"}),
    GenotypeMode.MULTIALLELIC: frozenset({"1/1", "2/2", "3/3"}),
}
HOM_REF_TOKEN = "0/0"


class MalformedPolicy(str, Enum):
    """What to do with a genotype token the parser does not recognize."""

    ABORT = "abort"
    MISSING = "missing"


@dataclass(frozen=True)
class GenotypeCall:
    """Classified genotype call.

    Attributes:
        state: Missing, hom-ref, het or hom-alt.
        alleles: Allele indices carried by the call; two for diploid
            calls, one for haploid calls, empty when missing.
    """

    state: GenotypeState
    alleles: tuple[int, ...] = ()

    @property
    def is_missing(self) -> bool:
        """Whether the call is missing."""
        return self.state is GenotypeState.MISSING


MISSING_CALL = GenotypeCall(GenotypeState.MISSING)


def genotype_field(token: str) -> str:
    """Extract the GT subfield from a raw sample field.

    FORMAT subfields after the first ``:`` are dropped. Phased pairs are
    read as unphased with the lower allele first, so ``1|0`` and ``0|1``
    are the same call; unphased tokens keep their order.

    Examples:
        >>> genotype_field("0/1:20,30:50:99")
        '0/1'
        >>> genotype_field("1|0")
        '0/1'
    """
    gt = token.split(":", 1)[0]
    if "|" not in gt:
        return gt
    alleles = gt.split("|")
    if all(a.isdigit() for a in alleles):
        alleles.sort(key=int)
    return "/".join(alleles)


def _classify_haploid(gt: str) -> GenotypeCall | None:
    # Diploid-looking calls are accepted: any ALT allele makes the call alt
    if gt in HAPLOID_MISSING_TOKENS:
        return MISSING_CALL
    alleles = gt.split("/")
    if not all(a == "." or a.isdigit() for a in alleles):
        return None
    called = [int(a) for a in alleles if a != "."]
    for allele in called:
        if allele != 0:
            return GenotypeCall(GenotypeState.HOM_ALT, (allele,))
    return GenotypeCall(GenotypeState.HOM_REF, (0,))


@lru_cache(maxsize=1024)
def _classify(gt: str, mode: GenotypeMode) -> GenotypeCall | None:
    if mode is GenotypeMode.HAPLOID:
        return _classify_haploid(gt)

    if gt in MISSING_TOKENS:
        return MISSING_CALL
    if gt == HOM_REF_TOKEN:
        return GenotypeCall(GenotypeState.HOM_REF, (0, 0))

    if gt in HET_TOKENS[mode]:
        state = GenotypeState.HET
    elif gt in HOM_ALT_TOKENS[mode]:
        state = GenotypeState.HOM_ALT
    else:
        return None
    first, second = gt.split("/")
    return GenotypeCall(state, (int(first), int(second)))


def parse_genotype(
    token: str,
    mode: GenotypeMode = GenotypeMode.BIALLELIC,
) -> GenotypeCall:
    """Classify one sample's genotype token.

    Recognized tokens per mode:

    - biallelic: ``./.``, ``0/0``, ``0/1``, ``1/1``
    - multiallelic: ``./.``, ``0/0``, het ``0/1 0/2 0/3 1/2 1/3 2/3``,
      hom-alt ``1/1 2/2 3/3``
    - haploid: ``.`` or ``./.`` missing; otherwise any nonzero allele
      makes the call hom-alt (``1``, ``1/1``, ``0/2``) and all-zero calls
      (``0``, ``0/0``) are hom-ref; never heterozygous

    Args:
        token: Raw sample field; only the GT part before ``:`` is used.
        mode: Genotype mode.

    Returns:
        The classified call.

    Raises:
        MalformedGenotypeError: If the token is not recognized in ``mode``.

    Examples:
        >>> parse_genotype("0/1:12,9").state
        <GenotypeState.HET: 2>
        >>> parse_genotype("1", GenotypeMode.HAPLOID).state
        <GenotypeState.HOM_ALT: 3>
    """
    mode = GenotypeMode(mode)
    call = _classify(genotype_field(token), mode)
    if call is None:
        raise MalformedGenotypeError(token, mode.value)
    return call


def allele_mode(mode: GenotypeMode) -> GenotypeMode:
    """Mode used for allele counting.

    Allele counting always accepts the full multiallelic token set for
    diploid data, whatever mode the per-sample counts use.
    """
    if mode is GenotypeMode.HAPLOID:
        return GenotypeMode.HAPLOID
    return GenotypeMode.MULTIALLELIC


@dataclass
class GenotypeMatrix:
    """Classified calls for every (site, sample) of a window.

    Attributes:
        states: int8 array (sites, samples) of GenotypeState values.
        alleles: int8 array (sites, samples, 2) of allele indices, -1
            where no allele was observed.
        n_malformed: Tokens unrecognized in the per-sample mode and
            counted as missing there. Their alleles are still recorded
            when the allele-counting token set accepts them.
    """

    states: np.ndarray
    alleles: np.ndarray
    n_malformed: int = 0

    @property
    def n_sites(self) -> int:
        """Number of sites (rows)."""
        return int(self.states.shape[0])

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[GenotypeRow],
        n_samples: int,
        mode: GenotypeMode = GenotypeMode.BIALLELIC,
        policy: MalformedPolicy = MalformedPolicy.ABORT,
    ) -> GenotypeMatrix:
        """Classify all calls of a window.

        Args:
            rows: Genotype rows of the window.
            n_samples: Number of samples in the VCF.
            mode: Mode for the per-sample state.
            policy: Handling of unrecognized tokens.

        Returns:
            GenotypeMatrix for the rows.

        Raises:
            MalformedGenotypeError: On an unrecognized token with policy ABORT.
            ValueError: If a row does not carry ``n_samples`` genotypes.
        """
        mode = GenotypeMode(mode)
        policy = MalformedPolicy(policy)
        counting_mode = allele_mode(mode)

        states = np.zeros((len(rows), n_samples), dtype=np.int8)
        alleles = np.full((len(rows), n_samples, 2), -1, dtype=np.int8)
        n_malformed = 0

        for i, row in enumerate(rows):
            if len(row.genotypes) != n_samples:
                raise ValueError(
                    f"{row.contig}:{row.pos} has {len(row.genotypes)} genotypes, "
                    f"expected {n_samples}"
                )
            for j, token in enumerate(row.genotypes):
                gt = genotype_field(token)
                call = _classify(gt, mode)
                counted = _classify(gt, counting_mode) if counting_mode is not mode else call
                if call is None:
                    if policy is MalformedPolicy.ABORT:
                        raise MalformedGenotypeError(token, mode.value)
                    n_malformed += 1
                else:
                    states[i, j] = call.state
                if counted is None:
                    continue
                for k, allele in enumerate(counted.alleles):
                    if 0 <= allele < N_ALLELE_CLASSES:
                        alleles[i, j, k] = allele

        return cls(states=states, alleles=alleles, n_malformed=n_malformed)

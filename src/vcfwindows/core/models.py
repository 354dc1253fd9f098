"""Data models for vcfwindows.

This module defines the core data structures used throughout the package
for representing contigs, windows, genotype rows and the per-window
statistics computed from them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

# ALT column value marking a monomorphic site in an all-sites VCF
MONOMORPHIC_ALT = "."
# Same marker in annotated all-sites VCFs
ANNOTATED_MONOMORPHIC_ALT = "A,C,G,T"


class GenotypeMode(str, Enum):
    """Which genotype tokens count as heterozygous / homozygous-alt."""

    BIALLELIC = "biallelic"
    MULTIALLELIC = "multiallelic"
    HAPLOID = "haploid"


class GenotypeState(int, Enum):
    """Classification of a single genotype call."""

    MISSING = 0
    HOM_REF = 1
    HET = 2
    HOM_ALT = 3


@dataclass(frozen=True)
class Contig:
    """Chromosome or scaffold with a fixed length.

    Attributes:
        name: Contig name as used in the VCF.
        length_bp: Length in base pairs.
    """

    name: str
    length_bp: int


@dataclass(frozen=True)
class Window:
    """Fixed-size genomic window.

    Attributes:
        contig: Contig name.
        start_bp: Window start position (1-based, inclusive).
        end_bp: Window end position (1-based, inclusive).
    """

    contig: str
    start_bp: int
    end_bp: int

    @property
    def size_bp(self) -> int:
        """Window size in base pairs."""
        return self.end_bp - self.start_bp + 1

    @property
    def region(self) -> str:
        """Region string in samtools/tabix notation."""
        return f"{self.contig}:{self.start_bp}-{self.end_bp}"

    def __repr__(self) -> str:
        """Return string representation of window."""
        return f"Window({self.contig}:{self.start_bp}-{self.end_bp})"


@dataclass(frozen=True)
class GenotypeRow:
    """One VCF data line, reduced to what the window statistics need.

    Attributes:
        contig: Chromosome name.
        pos: 1-based position.
        ref: Reference allele.
        alt: Raw ALT column (``.`` for monomorphic sites, comma-joined
            for multiallelic sites).
        info: Raw INFO column.
        genotypes: Raw sample fields, in VCF sample order.
    """

    contig: str
    pos: int
    ref: str
    alt: str
    info: str
    genotypes: tuple[str, ...]

    @classmethod
    def from_vcf_line(cls, line: str) -> GenotypeRow:
        """Build a row from a tab-separated VCF data line.

        Args:
            line: VCF data line, with or without trailing newline.

        Returns:
            GenotypeRow for the line.

        Raises:
            ValueError: If the line has fewer than 8 columns.
        """
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) < 8:
            raise ValueError(f"VCF line has {len(fields)} columns, expected at least 8")
        return cls(
            contig=fields[0],
            pos=int(fields[1]),
            ref=fields[3],
            alt=fields[4],
            info=fields[7],
            genotypes=tuple(fields[9:]),
        )

    def is_variable(self, monomorphic_alt: str = MONOMORPHIC_ALT) -> bool:
        """Whether the site carries at least one ALT allele."""
        return self.alt != monomorphic_alt


@dataclass
class SampleWindowCounts:
    """Genotype counts for one sample in one window.

    Attributes:
        n_missing: Sites in the window without a call (includes sites
            absent from the VCF).
        n_called: Sites with a non-missing call.
        n_het: Heterozygous calls.
        n_hom_alt: Homozygous alternative calls.
    """

    n_missing: int = 0
    n_called: int = 0
    n_het: int = 0
    n_hom_alt: int = 0

    @property
    def n_hom_ref(self) -> int:
        """Homozygous reference calls (nsites - nhet - nhomo)."""
        return self.n_called - self.n_het - self.n_hom_alt


@dataclass
class WindowPopulationStats:
    """Per-population statistics for one window.

    Attributes:
        n_poly: Sites where the population is polymorphic.
        n_mono: Sites where one allele is fixed in the population.
        n_missing_sites: Sites without any called allele in the population.
        pi: Mean allele-identity probability over sites with a defined
            frequency vector, NaN when there are none.
    """

    n_poly: int
    n_mono: int
    n_missing_sites: int
    pi: float = math.nan


@dataclass
class PopulationPairStats:
    """Statistics for one unordered population pair in one window."""

    dxy: float = math.nan
    mean_pop_ts: float = math.nan
    mean_pop_tv: float = math.nan
    pair_ts: float = math.nan
    pair_tv: float = math.nan


@dataclass(frozen=True)
class LDPair:
    """Correlation between genotypes at two sites.

    Attributes:
        pos1: Position of the first site.
        pos2: Position of the second site (pos2 > pos1).
        r2: Squared genotype correlation, may be NaN.
    """

    pos1: int
    pos2: int
    r2: float

    @property
    def distance(self) -> int:
        """Distance between the two sites in bp."""
        return self.pos2 - self.pos1


@dataclass
class LDSummary:
    """Window-level linkage disequilibrium summary.

    Attributes:
        n_snps: Variable sites in the window.
        n_pairs: Site pairs with a finite r².
        mean_distance: Mean distance between paired sites (NaN if no pairs).
        mean_r2: Mean r² (NaN if no pairs).
    """

    n_snps: int
    n_pairs: int
    mean_distance: float = math.nan
    mean_r2: float = math.nan


@dataclass
class AnnotationCounts:
    """Coding-site counts for annotated all-sites VCFs."""

    n_coding: int = 0
    low_mono: int = 0
    low_poly: int = 0
    high_mono: int = 0
    high_poly: int = 0


@dataclass
class WindowResult:
    """Everything computed for one window, ready for the output tables.

    Attributes:
        window: The window.
        n_sites: Rows retrieved for the window (``totalbp``).
        n_variable: Rows whose ALT is not the monomorphic marker (``npoly``).
        sample_counts: One entry per sample, in VCF order.
        population_stats: One entry per population, in label order.
        pair_stats: One entry per population pair, in pair order.
        n_ts: Biallelic sites classified as transitions.
        n_tv: Biallelic sites classified as transversions.
        ld: LD summary, or None when LD is disabled or the row is omitted.
        annotation: Coding-site counts in annotated mode.
        n_malformed: Genotype tokens counted as missing by policy.
    """

    window: Window
    n_sites: int
    n_variable: int
    sample_counts: list[SampleWindowCounts] = field(default_factory=list)
    population_stats: list[WindowPopulationStats] = field(default_factory=list)
    pair_stats: list[PopulationPairStats] = field(default_factory=list)
    n_ts: int = 0
    n_tv: int = 0
    ld: LDSummary | None = None
    annotation: AnnotationCounts | None = None
    n_malformed: int = 0

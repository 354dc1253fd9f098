"""VCF access for vcfwindows.

This module reads sample names and contig lengths from VCF headers and
provides the two region sources the window engine fetches genotype rows
from: an indexed one for bgzipped, tabix/CSI-indexed files and a
streaming one that serves ascending window requests from a single
forward pass over an unindexed file.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from cyvcf2 import VCF

from vcfwindows.core.models import Contig, GenotypeRow
from vcfwindows.utils.errors import RegionSourceError, format_missing_index
from vcfwindows.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = get_logger(__name__)

INDEX_SUFFIXES = (".tbi", ".csi")
INDEL_FLAG = "INDEL"


def get_sample_names(vcf_path: str | Path) -> list[str]:
    """Get list of sample names from a VCF file.

    Args:
        vcf_path: Path to VCF file (can be gzipped).

    Returns:
        List of sample names in header order.
    """
    vcf = VCF(str(vcf_path))
    samples = list(vcf.samples)
    vcf.close()
    return samples


def read_contig_lengths(vcf_path: str | Path, min_length: int = 0) -> list[Contig]:
    """Read contig lengths from ``##contig`` header lines.

    Args:
        vcf_path: Path to VCF file.
        min_length: Keep only contigs at least this long.

    Returns:
        Contigs in header order.
    """
    vcf = VCF(str(vcf_path))
    contigs = []
    n_short = 0
    for header in vcf.header_iter():
        if header["HeaderType"] != "CONTIG":
            continue
        info = header.info()
        name = info.get("ID")
        length = info.get("length")
        if name is None or length is None:
            logger.warning(f"Skipping contig header without ID or length: {info}")
            continue
        if int(length) < min_length:
            n_short += 1
            continue
        contigs.append(Contig(name=name, length_bp=int(length)))
    vcf.close()

    logger.info(
        f"Found {len(contigs)} contig(s) of at least {min_length:,} bp "
        f"({n_short} shorter contig(s) skipped)"
    )
    return contigs


def has_index(vcf_path: str | Path) -> bool:
    """Whether a tabix or CSI index sits next to the VCF."""
    return any(Path(f"{vcf_path}{suffix}").exists() for suffix in INDEX_SUFFIXES)


def _is_indel(row: GenotypeRow) -> bool:
    return INDEL_FLAG in row.info


class IndexedRegionSource:
    """Region queries against a bgzipped, indexed VCF.

    Args:
        vcf_path: Path to the VCF.
        skip_indels: Drop records whose INFO contains ``INDEL``.

    Raises:
        RegionSourceError: If no ``.tbi`` or ``.csi`` index exists.
    """

    def __init__(self, vcf_path: str | Path, skip_indels: bool = True) -> None:
        self.vcf_path = Path(vcf_path)
        self.skip_indels = skip_indels
        if not has_index(self.vcf_path):
            raise RegionSourceError(
                format_missing_index(self.vcf_path),
                suggestion="Index the VCF, or pass an unindexed VCF to stream it.",
            )
        self._vcf = VCF(str(self.vcf_path))

    def fetch(self, contig: str, start: int, end: int) -> list[GenotypeRow]:
        """Rows with ``start <= POS <= end`` on ``contig``."""
        rows = []
        for record in self._vcf(f"{contig}:{start}-{end}"):
            row = GenotypeRow.from_vcf_line(str(record))
            # Tabix also returns records overlapping the start from the left
            if row.pos < start or row.pos > end:
                continue
            if self.skip_indels and _is_indel(row):
                continue
            rows.append(row)
        return rows

    def close(self) -> None:
        self._vcf.close()

    def __enter__(self) -> IndexedRegionSource:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class StreamingRegionSource:
    """Window requests served from a forward pass over an unindexed VCF.

    Requests are expected in ascending order within a contig. Only one
    record past the current window is held in memory. A request for a
    position already passed reopens the file and scans from the top.

    Args:
        vcf_path: Path to the VCF.
        skip_indels: Drop records whose INFO contains ``INDEL``.
    """

    def __init__(self, vcf_path: str | Path, skip_indels: bool = True) -> None:
        self.vcf_path = Path(vcf_path)
        self.skip_indels = skip_indels
        self._vcf: VCF | None = None
        self._records: Iterator | None = None
        self._lookahead: GenotypeRow | None = None
        self._exhausted = False
        self._current: str | None = None
        self._passed: set[str] = set()
        self._last: tuple[str, int] | None = None
        self.n_reopens = 0

    def _open(self) -> None:
        if self._vcf is not None:
            self._vcf.close()
            self.n_reopens += 1
            logger.debug(f"Reopening {self.vcf_path} for an out-of-order request")
        self._vcf = VCF(str(self.vcf_path))
        self._records = iter(self._vcf)
        self._lookahead = None
        self._exhausted = False
        self._current = None
        self._passed = set()
        self._last = None

    def _read_next(self) -> GenotypeRow | None:
        for record in self._records:
            row = GenotypeRow.from_vcf_line(str(record))
            if self.skip_indels and _is_indel(row):
                continue
            return row
        return None

    def _peek(self) -> GenotypeRow | None:
        if self._lookahead is None and not self._exhausted:
            row = self._read_next()
            if row is None:
                self._exhausted = True
                if self._current is not None:
                    self._passed.add(self._current)
            else:
                if self._current is not None and row.contig != self._current:
                    self._passed.add(self._current)
                self._current = row.contig
                self._lookahead = row
        return self._lookahead

    def _needs_reopen(self, contig: str, start: int) -> bool:
        if self._vcf is None:
            return True
        if self._last is not None:
            last_contig, last_end = self._last
            if contig == last_contig:
                # Moving forward on the same contig never rereads the file
                return start <= last_end
        return contig in self._passed

    def fetch(self, contig: str, start: int, end: int) -> list[GenotypeRow]:
        """Rows with ``start <= POS <= end`` on ``contig``."""
        if self._needs_reopen(contig, start):
            self._open()
        self._last = (contig, end)

        rows = []
        while True:
            row = self._peek()
            if row is None:
                break
            if row.contig != contig:
                if contig in self._passed:
                    break
                self._lookahead = None
                continue
            if row.pos > end:
                break
            self._lookahead = None
            if row.pos >= start:
                rows.append(row)
        return rows

    def close(self) -> None:
        if self._vcf is not None:
            self._vcf.close()
            self._vcf = None

    def __enter__(self) -> StreamingRegionSource:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_region_source(
    vcf_path: str | Path,
    skip_indels: bool = True,
) -> IndexedRegionSource | StreamingRegionSource:
    """Open the best region source for a VCF.

    Uses region queries when an index exists and streaming otherwise.
    """
    if has_index(vcf_path):
        logger.info(f"Using indexed region queries on {vcf_path}")
        return IndexedRegionSource(vcf_path, skip_indels=skip_indels)
    logger.info(f"No index found for {vcf_path}; streaming records in file order")
    return StreamingRegionSource(vcf_path, skip_indels=skip_indels)

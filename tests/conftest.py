"""Pytest configuration and fixtures for vcfwindows tests."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from vcfwindows.analysis.populations import PopulationLayout
from vcfwindows.core.models import Contig, GenotypeRow, LDPair

# Small all-sites VCF: two populations (S1,S2 = popA; S3,S4 = popB),
# a skipped indel at chr1:12 and one short scaffold.
SAMPLE_VCF_CONTENT = """\
##fileformat=VCFv4.2
##FILTER=<ID=PASS,Description="All filters passed">
##INFO=<ID=DP,Number=1,Type=Integer,Description="Total depth">
##INFO=<ID=INDEL,Number=0,Type=Flag,Description="Indel">
##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">
##FORMAT=<ID=DP,Number=1,Type=Integer,Description="Read depth">
##contig=<ID=chr1,length=50>
##contig=<ID=chr2,length=30>
##contig=<ID=scaffold_9,length=5>
#CHROM	POS	ID	REF	ALT	QUAL	FILTER	INFO	FORMAT	S1	S2	S3	S4
chr1	2	.	A	.	.	PASS	DP=40	GT	0/0	0/0	0/0	0/0
chr1	5	.	A	G	.	PASS	DP=40	GT	0/0	0/1	1/1	./.
chr1	9	.	C	T	.	PASS	DP=40	GT:DP	0/1:10	0/1:10	0/0:10	0/0:10
chr1	12	.	AT	A	.	PASS	INDEL;DP=40	GT	0/1	0/1	0/1	0/1
chr1	15	.	G	C	.	PASS	DP=40	GT	1/1	1/1	0/0	0/0
chr1	25	.	T	.	.	PASS	DP=40	GT	0/0	0/0	./.	0/0
chr1	44	.	C	A	.	PASS	DP=40	GT	0/0	0/1	0/0	0/0
chr2	3	.	G	A	.	PASS	DP=40	GT	0/1	0/0	0/0	1/1
chr2	28	.	A	.	.	PASS	DP=40	GT	0/0	0/0	0/0	0/0
"""

POPULATION_FILE_CONTENT = """\
# sample	population
S1	popA
S2	popA

S3	popB
S4	popB
"""

NO_GT_VCF_CONTENT = """\
##fileformat=VCFv4.2
##FORMAT=<ID=DP,Number=1,Type=Integer,Description="Read depth">
##contig=<ID=chr1,length=50>
#CHROM	POS	ID	REF	ALT	QUAL	FILTER	INFO	FORMAT	S1
"""

SITES_ONLY_VCF_CONTENT = """\
##fileformat=VCFv4.2
##contig=<ID=chr1,length=50>
#CHROM	POS	ID	REF	ALT	QUAL	FILTER	INFO
chr1	5	.	A	G	.	PASS	.
"""

SAMPLES = ["S1", "S2", "S3", "S4"]


def make_row(
    pos: int,
    genotypes: list[str],
    ref: str = "A",
    alt: str = "G",
    contig: str = "chr1",
    info: str = ".",
) -> GenotypeRow:
    """Build a GenotypeRow without going through a VCF file."""
    return GenotypeRow(
        contig=contig, pos=pos, ref=ref, alt=alt, info=info, genotypes=tuple(genotypes)
    )


class MemoryRegionSource:
    """Region source over a list of rows, recording every request."""

    def __init__(self, rows: list[GenotypeRow]) -> None:
        self.rows = rows
        self.requests: list[tuple[str, int, int]] = []

    def fetch(self, contig: str, start: int, end: int) -> list[GenotypeRow]:
        self.requests.append((contig, start, end))
        return [r for r in self.rows if r.contig == contig and start <= r.pos <= end]


class FlakyRegionSource(MemoryRegionSource):
    """Region source failing the first ``failures`` requests."""

    def __init__(self, rows: list[GenotypeRow], failures: int) -> None:
        super().__init__(rows)
        self.failures = failures

    def fetch(self, contig: str, start: int, end: int) -> list[GenotypeRow]:
        if self.failures > 0:
            self.failures -= 1
            raise OSError("simulated read error")
        return super().fetch(contig, start, end)


class StaticCorrelationSource:
    """Correlation source returning fixed pairs."""

    def __init__(self, pairs: list[LDPair]) -> None:
        self._pairs = pairs

    def pairs(self, rows) -> list[LDPair]:
        return list(self._pairs)


class CollectingWriter:
    """Writer keeping every result in memory."""

    def __init__(self) -> None:
        self.results = []

    def write(self, result) -> None:
        self.results.append(result)


@pytest.fixture
def sample_vcf_path(tmp_path: Path) -> Path:
    """Create a temporary all-sites VCF file.

    Returns:
        Path to the temporary VCF file.
    """
    vcf_path = tmp_path / "allsites.vcf"
    vcf_path.write_text(SAMPLE_VCF_CONTENT)
    return vcf_path


@pytest.fixture
def indexed_vcf_path(sample_vcf_path: Path) -> Path:
    """bgzip and tabix-index the all-sites VCF.

    Skips the test when the htslib command line tools are not installed.
    """
    bgzip = shutil.which("bgzip")
    tabix = shutil.which("tabix")
    if bgzip is None or tabix is None:
        pytest.skip("bgzip and tabix are required for indexed VCF tests")

    gz_path = sample_vcf_path.with_suffix(".vcf.gz")
    with open(gz_path, "wb") as out:
        subprocess.run([bgzip, "-c", str(sample_vcf_path)], stdout=out, check=True)
    subprocess.run([tabix, "-p", "vcf", str(gz_path)], check=True)
    return gz_path


@pytest.fixture
def population_file(tmp_path: Path) -> Path:
    """Create a temporary population file (S1,S2 = popA; S3,S4 = popB)."""
    path = tmp_path / "pops.txt"
    path.write_text(POPULATION_FILE_CONTENT)
    return path


@pytest.fixture
def no_gt_vcf_path(tmp_path: Path) -> Path:
    """VCF whose header declares no GT FORMAT field."""
    vcf_path = tmp_path / "no_gt.vcf"
    vcf_path.write_text(NO_GT_VCF_CONTENT)
    return vcf_path


@pytest.fixture
def sites_only_vcf_path(tmp_path: Path) -> Path:
    """VCF without sample columns."""
    vcf_path = tmp_path / "sites_only.vcf"
    vcf_path.write_text(SITES_ONLY_VCF_CONTENT)
    return vcf_path


@pytest.fixture
def sample_contigs() -> list[Contig]:
    """Contigs of the sample VCF that a run scans."""
    return [Contig("chr1", 50), Contig("chr2", 30)]


@pytest.fixture
def sample_rows() -> list[GenotypeRow]:
    """Rows of the sample VCF, without the indel."""
    return [
        make_row(2, ["0/0", "0/0", "0/0", "0/0"], alt="."),
        make_row(5, ["0/0", "0/1", "1/1", "./."], ref="A", alt="G"),
        make_row(9, ["0/1:10", "0/1:10", "0/0:10", "0/0:10"], ref="C", alt="T"),
        make_row(15, ["1/1", "1/1", "0/0", "0/0"], ref="G", alt="C"),
        make_row(25, ["0/0", "0/0", "./.", "0/0"], ref="T", alt="."),
        make_row(44, ["0/0", "0/1", "0/0", "0/0"], ref="C", alt="A"),
        make_row(3, ["0/1", "0/0", "0/0", "1/1"], ref="G", alt="A", contig="chr2"),
        make_row(28, ["0/0", "0/0", "0/0", "0/0"], alt=".", contig="chr2"),
    ]


@pytest.fixture
def two_population_layout() -> PopulationLayout:
    """Layout with S1,S2 in popA and S3,S4 in popB."""
    return PopulationLayout.from_mapping(
        SAMPLES, {"S1": "popA", "S2": "popA", "S3": "popB", "S4": "popB"}
    )

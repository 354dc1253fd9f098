"""Integration tests for complete window analysis workflows."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from vcfwindows.analysis.engine import EngineConfig, WindowEngine
from vcfwindows.analysis.populations import PopulationLayout
from vcfwindows.cli import cli
from vcfwindows.io.readers import read_population_file, read_window_table
from vcfwindows.io.vcf import StreamingRegionSource, get_sample_names, read_contig_lengths
from vcfwindows.io.writers import OutputWriter


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


def cli_run(runner, vcf, population_file, out, *extra):
    result = runner.invoke(cli, [
        "run",
        "--vcf", str(vcf),
        "--populations", str(population_file),
        "--out", str(out),
        "--window-size", "20",
        "--min-contig-length", "10",
        "--no-progress",
        *extra,
    ])
    assert result.exit_code == 0, result.output
    return result


def column(rows, name):
    return [row[name] for row in rows]


class TestLibraryWorkflow:
    """VCF to tables through the Python API."""

    def test_streaming_run(self, sample_vcf_path: Path, population_file: Path, tmp_path: Path) -> None:
        """Test reading, computing and writing without the CLI."""
        samples = get_sample_names(sample_vcf_path)
        contigs = read_contig_lengths(sample_vcf_path, min_length=10)
        layout = PopulationLayout.from_mapping(samples, read_population_file(population_file))
        config = EngineConfig(window_size=20)
        engine = WindowEngine(config=config, samples=samples, layout=layout)

        with StreamingRegionSource(sample_vcf_path) as source, OutputWriter(
            tmp_path / "api", samples, config, layout
        ) as writer:
            stats = engine.run(contigs, source, writer, show_progress=False)

        assert stats.n_windows == 5
        # The chr1:12 indel is skipped
        assert stats.n_sites == 8
        assert stats.n_variable == 5
        assert source.n_reopens == 0
        assert writer.n_rows["diversity"] == 5


class TestCliWorkflow:
    """End-to-end runs through the command line."""

    def test_diversity_table(
        self, runner: CliRunner, sample_vcf_path: Path, population_file: Path, tmp_path: Path
    ) -> None:
        """Test pi and Dxy for every window."""
        cli_run(runner, sample_vcf_path, population_file, tmp_path / "r")

        rows = read_window_table(tmp_path / "r_diversity.tsv")

        assert [(r["contig"], r["startbp"], r["endbp"]) for r in rows] == [
            ("chr1", "1", "20"), ("chr1", "21", "40"), ("chr1", "41", "50"),
            ("chr2", "1", "20"), ("chr2", "21", "30"),
        ]
        assert column(rows, "totalbp") == ["4", "1", "1", "1", "1"]
        assert column(rows, "npoly") == ["3", "0", "1", "1", "0"]
        assert column(rows, "pi_1") == ["0.708333", "NA", "0.625000", "0.625000", "NA"]
        assert column(rows, "pi_2") == ["1.000000", "NA", "1.000000", "0.500000", "NA"]
        assert column(rows, "dxy_1_2") == ["0.250000", "NA", "0.750000", "0.500000", "NA"]

    def test_samples_table(
        self, runner: CliRunner, sample_vcf_path: Path, population_file: Path, tmp_path: Path
    ) -> None:
        """Test per-sample counts, numbered in VCF order."""
        cli_run(runner, sample_vcf_path, population_file, tmp_path / "r")

        rows = read_window_table(tmp_path / "r_samples.tsv")

        chr2 = rows[3]
        assert (chr2["nmiss_1"], chr2["nsites_1"], chr2["nhet_1"], chr2["nhomo_1"]) == (
            "19", "1", "1", "0",
        )
        assert (chr2["nmiss_4"], chr2["nsites_4"], chr2["nhet_4"], chr2["nhomo_4"]) == (
            "19", "1", "0", "1",
        )
        # S3 is missing at chr1:25
        assert rows[1]["nsites_3"] == "0"
        assert rows[1]["nmiss_3"] == "20"

    def test_tstv_table(
        self, runner: CliRunner, sample_vcf_path: Path, population_file: Path, tmp_path: Path
    ) -> None:
        cli_run(runner, sample_vcf_path, population_file, tmp_path / "r")

        rows = read_window_table(tmp_path / "r_tstv.tsv")

        assert column(rows, "nts") == ["2", "0", "0", "1", "0"]
        assert column(rows, "ntv") == ["1", "0", "1", "0", "0"]
        assert rows[3]["meanpopts_1_2"] == "0.437500"
        assert rows[3]["pairts_1_2"] == "0.500000"
        assert rows[3]["meanpoptv_1_2"] == "NA"

    def test_polymorphism_partition(
        self, runner: CliRunner, sample_vcf_path: Path, population_file: Path, tmp_path: Path
    ) -> None:
        """Test poly + mono + missing equals the variable sites per population."""
        cli_run(runner, sample_vcf_path, population_file, tmp_path / "r")

        for row in read_window_table(tmp_path / "r_polymorphism.tsv"):
            for p in (1, 2):
                total = sum(int(row[f"{k}_{p}"]) for k in ("npoly", "nmono", "nmiss"))
                assert total == int(row["npoly"])

    def test_ld_table_default_emits_na(
        self, runner: CliRunner, sample_vcf_path: Path, population_file: Path, tmp_path: Path
    ) -> None:
        """Test windows without valid LD pairs get an NA row."""
        cli_run(runner, sample_vcf_path, population_file, tmp_path / "r")

        rows = read_window_table(tmp_path / "r_ld.tsv")

        assert len(rows) == 5
        assert column(rows, "nrpairs_all") == ["0"] * 5
        assert column(rows, "LD_all") == ["NA"] * 5

    def test_ld_omit(
        self, runner: CliRunner, sample_vcf_path: Path, population_file: Path, tmp_path: Path
    ) -> None:
        cli_run(runner, sample_vcf_path, population_file, tmp_path / "r", "--ld-empty", "omit")

        assert read_window_table(tmp_path / "r_ld.tsv") == []

    def test_ld_with_low_mac(
        self, runner: CliRunner, sample_vcf_path: Path, population_file: Path, tmp_path: Path
    ) -> None:
        """Test LD pairs appear once the minor allele count allows them."""
        cli_run(
            runner, sample_vcf_path, population_file, tmp_path / "r", "--ld-min-mac", "1"
        )

        first = read_window_table(tmp_path / "r_ld.tsv")[0]

        assert first["nrsnps"] == "3"
        assert int(first["nrpairs_all"]) > 0

    def test_no_pairs(
        self, runner: CliRunner, sample_vcf_path: Path, population_file: Path, tmp_path: Path
    ) -> None:
        cli_run(runner, sample_vcf_path, population_file, tmp_path / "r", "--no-pairs")

        diversity = read_window_table(tmp_path / "r_diversity.tsv")
        tstv = read_window_table(tmp_path / "r_tstv.tsv")

        assert "dxy_1_2" not in diversity[0]
        assert "meanpopts_1_2" in tstv[0]
        assert "pairts_1_2" not in tstv[0]

    def test_workers_give_identical_tables(
        self, runner: CliRunner, sample_vcf_path: Path, population_file: Path, tmp_path: Path
    ) -> None:
        """Test a pooled run writes the same bytes as a sequential one."""
        cli_run(runner, sample_vcf_path, population_file, tmp_path / "seq")
        cli_run(runner, sample_vcf_path, population_file, tmp_path / "pool", "--workers", "2")

        for table in ("samples", "diversity", "polymorphism", "tstv", "ld"):
            seq = (tmp_path / f"seq_{table}.tsv").read_bytes()
            pool = (tmp_path / f"pool_{table}.tsv").read_bytes()
            assert seq == pool

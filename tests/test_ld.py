"""Tests for linkage disequilibrium summaries."""

from __future__ import annotations

import math

import numpy as np
import pytest

from conftest import StaticCorrelationSource, make_row
from vcfwindows.analysis.ld import (
    GenotypeCorrelationSource,
    LDAggregator,
    LDEmptyPolicy,
    genotype_r2,
    summarize_ld,
)
from vcfwindows.core.models import LDPair


class TestSummarizeLD:
    """Tests for summarize_ld."""

    def test_means(self) -> None:
        """Test mean distance and mean r2."""
        pairs = [LDPair(100, 200, 0.5), LDPair(100, 400, 0.1), LDPair(200, 400, 0.3)]

        summary = summarize_ld(pairs, n_snps=3)

        assert summary.n_snps == 3
        assert summary.n_pairs == 3
        assert summary.mean_distance == pytest.approx(200.0)
        assert summary.mean_r2 == pytest.approx(0.3)

    def test_non_finite_dropped(self) -> None:
        """Test NaN and infinite r2 values are dropped."""
        pairs = [LDPair(1, 11, float("nan")), LDPair(1, 21, 0.4), LDPair(5, 6, float("inf"))]

        summary = summarize_ld(pairs, n_snps=4)

        assert summary.n_pairs == 1
        assert summary.mean_distance == pytest.approx(20.0)
        assert summary.mean_r2 == pytest.approx(0.4)

    def test_no_pairs(self) -> None:
        """Test an empty window."""
        summary = summarize_ld([], n_snps=2)

        assert summary.n_pairs == 0
        assert math.isnan(summary.mean_distance)
        assert math.isnan(summary.mean_r2)


class TestLDAggregator:
    """Tests for the empty-window policy."""

    def test_emit_keeps_empty_summary(self) -> None:
        """Test the default policy keeps empty windows."""
        aggregator = LDAggregator(StaticCorrelationSource([]))

        summary = aggregator.summarize([], n_snps=0)

        assert summary is not None
        assert summary.n_pairs == 0

    def test_omit_drops_empty_summary(self) -> None:
        """Test the omit policy drops empty windows."""
        aggregator = LDAggregator(
            StaticCorrelationSource([LDPair(1, 2, float("nan"))]),
            empty_policy=LDEmptyPolicy.OMIT,
        )

        assert aggregator.summarize([], n_snps=2) is None

    def test_omit_keeps_nonempty_summary(self) -> None:
        """Test the omit policy keeps windows with pairs."""
        aggregator = LDAggregator(
            StaticCorrelationSource([LDPair(1, 2, 0.9)]), empty_policy="omit"
        )

        assert aggregator.summarize([], n_snps=2).n_pairs == 1


class TestGenotypeR2:
    """Tests for genotype_r2."""

    def test_perfect_negative_correlation(self) -> None:
        """Test r2 is 1 for perfectly anti-correlated dosages."""
        assert genotype_r2(np.array([0.0, 1.0, 2.0]), np.array([2.0, 1.0, 0.0])) == pytest.approx(1.0)

    def test_zero_variance(self) -> None:
        """Test constant dosages give NaN."""
        assert math.isnan(genotype_r2(np.array([1.0, 1.0, 1.0]), np.array([0.0, 1.0, 2.0])))

    def test_shared_calls_only(self) -> None:
        """Test samples missing at either site are ignored."""
        x = np.array([0.0, 2.0, np.nan, 1.0])
        y = np.array([0.0, 2.0, 2.0, np.nan])

        assert genotype_r2(x, y) == pytest.approx(1.0)

    def test_too_few_samples(self) -> None:
        """Test fewer than two shared samples give NaN."""
        assert math.isnan(genotype_r2(np.array([0.0, np.nan]), np.array([1.0, 2.0])))


class TestGenotypeCorrelationSource:
    """Tests for the default correlation source."""

    def test_pairs_within_distance(self) -> None:
        """Test only sites within max_distance_bp are paired."""
        genotypes = ["0/0", "0/1", "1/1", "0/1"]
        rows = [make_row(pos, genotypes) for pos in (100, 600, 1500)]
        source = GenotypeCorrelationSource(max_distance_bp=1000, min_mac=1)

        pairs = source.pairs(rows)

        assert [(p.pos1, p.pos2) for p in pairs] == [(100, 600), (600, 1500)]
        assert all(p.r2 == pytest.approx(1.0) for p in pairs)

    def test_min_mac_filter(self) -> None:
        """Test sites below the minor allele count are skipped."""
        rows = [
            make_row(1, ["0/0", "0/1", "1/1", "0/1"]),
            make_row(2, ["0/0", "0/0", "0/0", "0/1"]),
        ]

        assert GenotypeCorrelationSource(min_mac=2).pairs(rows) == []
        assert len(GenotypeCorrelationSource(min_mac=1).pairs(rows)) == 1

    def test_skips_monomorphic_and_multiallelic(self) -> None:
        """Test only single-ALT variable sites are used."""
        rows = [
            make_row(1, ["0/0", "0/1"], alt="."),
            make_row(2, ["0/0", "0/1"], alt="G,T"),
            make_row(3, ["0/0", "0/1"]),
        ]

        assert GenotypeCorrelationSource(min_mac=1).pairs(rows) == []

    def test_zero_variance_pair_is_nan(self) -> None:
        """Test a pair whose shared samples do not vary."""
        rows = [
            make_row(1, ["0/1", "0/1", "./.", "1/1"]),
            make_row(2, ["0/0", "1/1", "0/1", "./."]),
        ]

        (pair,) = GenotypeCorrelationSource(min_mac=1).pairs(rows)

        assert math.isnan(pair.r2)

    def test_default_mac_empties_small_windows(self, sample_rows) -> None:
        """Test the default minor allele count of 12 with four samples."""
        assert GenotypeCorrelationSource().pairs(sample_rows) == []

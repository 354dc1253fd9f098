"""Window engine for vcfwindows.

The engine walks the windows of every contig in order, fetches the
genotype rows of each window from a region source, computes all enabled
statistics and hands one WindowResult per window to a writer.

Region retrieval always happens in the calling process. The statistics
of a window are computed either inline or, with ``workers > 1``, in a
process pool; results are always consumed in submission order so the
writer sees windows in genome order.
"""

from __future__ import annotations

import signal
from collections import deque
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

import numpy as np

from vcfwindows.analysis.ld import GenotypeCorrelationSource, LDAggregator, LDEmptyPolicy
from vcfwindows.analysis.populations import (
    AlleleFrequencyCalculator,
    pair_stats,
    population_window_stats,
)
from vcfwindows.analysis.samples import aggregate_sample_counts
from vcfwindows.analysis.tstv import tstv_pair_stats
from vcfwindows.analysis.windows import WindowIterator
from vcfwindows.core.genotypes import GenotypeMatrix, MalformedPolicy
from vcfwindows.core.models import (
    ANNOTATED_MONOMORPHIC_ALT,
    MONOMORPHIC_ALT,
    AnnotationCounts,
    GenotypeMode,
    WindowResult,
)
from vcfwindows.utils.errors import RegionSourceError
from vcfwindows.utils.logging import get_logger, progress_iterator

if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable, Sequence

    from vcfwindows.analysis.ld import CorrelationSource
    from vcfwindows.analysis.populations import PopulationLayout
    from vcfwindows.core.models import Contig, GenotypeRow, Window

logger = get_logger(__name__)


class RegionSource(Protocol):
    """Anything that returns the genotype rows of a genomic interval."""

    def fetch(self, contig: str, start: int, end: int) -> list[GenotypeRow]: ...


class ResultWriter(Protocol):
    """Sink for window results, called once per window in genome order."""

    def write(self, result: WindowResult) -> None: ...


@dataclass(frozen=True)
class EngineConfig:
    """Run configuration.

    Attributes:
        window_size: Window size in bp.
        mode: Genotype mode for the per-sample counts.
        on_malformed: Handling of unrecognized genotype tokens.
        sample_stats: Compute per-sample counts.
        pairs: Compute Dxy for population pairs.
        tstv: Compute transition/transversion statistics.
        ld: Compute window LD summaries.
        ld_window_bp: Maximum distance between LD site pairs.
        ld_min_mac: Minimum minor allele count for LD sites.
        ld_empty: Output for windows without valid LD pairs.
        annotated: Input is an annotated all-sites VCF.
        workers: Worker processes; 1 computes inline.
        fetch_retries: Extra attempts for a failing region fetch.
    """

    window_size: int = 20_000
    mode: GenotypeMode = GenotypeMode.BIALLELIC
    on_malformed: MalformedPolicy = MalformedPolicy.ABORT
    sample_stats: bool = True
    pairs: bool = True
    tstv: bool = True
    ld: bool = True
    ld_window_bp: int = 1000
    ld_min_mac: int = 12
    ld_empty: LDEmptyPolicy = LDEmptyPolicy.EMIT
    annotated: bool = False
    workers: int = 1
    fetch_retries: int = 0

    @property
    def monomorphic_alt(self) -> str:
        """ALT value marking monomorphic sites."""
        return ANNOTATED_MONOMORPHIC_ALT if self.annotated else MONOMORPHIC_ALT

    @property
    def ploidy(self) -> int:
        return 1 if self.mode is GenotypeMode.HAPLOID else 2

    def to_dict(self) -> dict[str, int | str | bool]:
        """Parameters for the run summary."""
        return {
            "window_size": self.window_size,
            "mode": self.mode.value,
            "on_malformed": self.on_malformed.value,
            "sample_stats": self.sample_stats,
            "pairs": self.pairs,
            "tstv": self.tstv,
            "ld": self.ld,
            "ld_window_bp": self.ld_window_bp,
            "ld_min_mac": self.ld_min_mac,
            "ld_empty": self.ld_empty.value,
            "annotated": self.annotated,
            "workers": self.workers,
            "fetch_retries": self.fetch_retries,
        }


@dataclass(frozen=True)
class WindowSettings:
    """Everything a worker needs besides the window and its rows."""

    config: EngineConfig
    n_samples: int
    layout: PopulationLayout | None = None
    correlation_source: CorrelationSource | None = None


@dataclass
class EngineStats:
    """Counters for one engine run."""

    n_windows: int = 0
    n_sites: int = 0
    n_variable: int = 0
    n_malformed: int = 0
    cancelled: bool = False

    def record(self, result: WindowResult) -> None:
        self.n_windows += 1
        self.n_sites += result.n_sites
        self.n_variable += result.n_variable
        self.n_malformed += result.n_malformed


def annotation_counts(
    rows: Iterable[GenotypeRow],
    monomorphic_alt: str = ANNOTATED_MONOMORPHIC_ALT,
) -> AnnotationCounts:
    """Count coding sites by impact class.

    Coding rows are those whose INFO does not mention ``intergenic``.
    Low-impact rows carry ``LOW`` but neither ``HIGH`` nor ``MODERATE``;
    high-impact rows carry ``HIGH`` but neither ``LOW`` nor ``MODERATE``.
    """
    counts = AnnotationCounts()
    for row in rows:
        info = row.info
        if "intergenic" in info:
            continue
        counts.n_coding += 1
        mono = not row.is_variable(monomorphic_alt)
        if "LOW" in info and "HIGH" not in info and "MODERATE" not in info:
            if mono:
                counts.low_mono += 1
            else:
                counts.low_poly += 1
        elif "HIGH" in info and "LOW" not in info and "MODERATE" not in info:
            if mono:
                counts.high_mono += 1
            else:
                counts.high_poly += 1
    return counts


def compute_window(
    window: Window,
    rows: Sequence[GenotypeRow],
    settings: WindowSettings,
) -> WindowResult:
    """Compute every enabled statistic for one window.

    Module-level so that it can be shipped to worker processes.

    Args:
        window: The window.
        rows: Genotype rows inside the window, in position order.
        settings: Run configuration, sample count, population layout and
            an optional LD correlation source.

    Returns:
        WindowResult for the window.

    Raises:
        MalformedGenotypeError: On an unrecognized genotype token when
            the malformed policy is ``abort``.
    """
    config = settings.config
    matrix = GenotypeMatrix.from_rows(
        rows, settings.n_samples, mode=config.mode, policy=config.on_malformed
    )
    variable = np.array(
        [row.is_variable(config.monomorphic_alt) for row in rows], dtype=bool
    )
    variable_rows = [row for row, keep in zip(rows, variable) if keep]

    result = WindowResult(
        window=window,
        n_sites=len(rows),
        n_variable=len(variable_rows),
        n_malformed=matrix.n_malformed,
    )

    if config.sample_stats:
        result.sample_counts = aggregate_sample_counts(matrix, window)
    if config.annotated:
        result.annotation = annotation_counts(rows, config.monomorphic_alt)

    layout = settings.layout
    if layout is not None:
        calculator = AlleleFrequencyCalculator(layout, ploidy=config.ploidy)
        freqs = calculator.frequencies(matrix.alleles[variable])
        result.population_stats = population_window_stats(freqs)
        if config.pairs or config.tstv:
            result.pair_stats = pair_stats(freqs, layout)
        if config.tstv:
            result.n_ts, result.n_tv = tstv_pair_stats(
                variable_rows, freqs, layout, result.pair_stats
            )

    if config.ld:
        source = settings.correlation_source
        if source is None:
            source = GenotypeCorrelationSource(config.ld_window_bp, config.ld_min_mac)
        aggregator = LDAggregator(source, empty_policy=config.ld_empty)
        result.ld = aggregator.summarize(rows, result.n_variable)

    return result


def _ignore_sigint() -> None:
    # Ctrl-C is handled by the parent through the cancel event
    signal.signal(signal.SIGINT, signal.SIG_IGN)


@dataclass
class WindowEngine:
    """Drives the window loop.

    Attributes:
        config: Run configuration.
        samples: Sample names in VCF header order.
        layout: Population layout, or None to skip population statistics.
        correlation_source: Source of LD pairs; defaults to genotype
            correlations limited by ``ld_window_bp`` and ``ld_min_mac``.
    """

    config: EngineConfig
    samples: list[str]
    layout: PopulationLayout | None = None
    correlation_source: CorrelationSource | None = None
    settings: WindowSettings = field(init=False)

    def __post_init__(self) -> None:
        self.settings = WindowSettings(
            config=self.config,
            n_samples=len(self.samples),
            layout=self.layout,
            correlation_source=self.correlation_source,
        )

    def fetch(self, source: RegionSource, window: Window) -> list[GenotypeRow]:
        """Fetch the rows of a window, retrying ``fetch_retries`` times.

        Raises:
            RegionSourceError: If every attempt fails.
        """
        attempts = self.config.fetch_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return source.fetch(window.contig, window.start_bp, window.end_bp)
            except Exception as e:
                if attempt == attempts:
                    raise RegionSourceError(
                        f"Cannot retrieve {window.region} after {attempts} attempt(s): {e}",
                        suggestion="Check that the VCF is readable and its index is current, "
                        "or raise --fetch-retries for flaky storage.",
                    ) from e
                logger.warning(
                    f"Fetching {window.region} failed (attempt {attempt}/{attempts}): {e}"
                )
        raise AssertionError("unreachable")

    def run(
        self,
        contigs: Iterable[Contig | tuple[str, int]],
        region_source: RegionSource,
        writer: ResultWriter,
        cancel: threading.Event | None = None,
        show_progress: bool = True,
    ) -> EngineStats:
        """Process every window of ``contigs`` and write the results.

        Args:
            contigs: Contigs in output order.
            region_source: Source of genotype rows.
            writer: Receives one result per window, in window order.
            cancel: When set, the run stops at the next window boundary.
            show_progress: Show a progress bar.

        Returns:
            EngineStats for the run.

        Raises:
            RegionSourceError: If a window cannot be retrieved.
            MalformedGenotypeError: On an unrecognized token with policy abort.
        """
        windows = WindowIterator(contigs, self.config.window_size)
        windows.describe()

        iterable: Iterable[Window] = windows
        if show_progress:
            iterable = progress_iterator(
                windows, total=len(windows), description="Scanning windows"
            )

        if self.config.workers > 1:
            stats = self._run_pool(iterable, region_source, writer, cancel)
        else:
            stats = self._run_sequential(iterable, region_source, writer, cancel)

        if stats.cancelled:
            logger.warning(f"Run cancelled after {stats.n_windows:,} window(s)")
        else:
            logger.info(f"Processed {stats.n_windows:,} windows, {stats.n_sites:,} sites")
        return stats

    def _run_sequential(self, windows, region_source, writer, cancel) -> EngineStats:
        stats = EngineStats()
        for window in windows:
            if cancel is not None and cancel.is_set():
                stats.cancelled = True
                break
            rows = self.fetch(region_source, window)
            result = compute_window(window, rows, self.settings)
            writer.write(result)
            stats.record(result)
        return stats

    def _run_pool(self, windows, region_source, writer, cancel) -> EngineStats:
        stats = EngineStats()
        max_in_flight = 2 * self.config.workers
        pending: deque = deque()

        def emit_next() -> None:
            result = pending.popleft().result()
            writer.write(result)
            stats.record(result)

        with ProcessPoolExecutor(
            max_workers=self.config.workers, initializer=_ignore_sigint
        ) as pool:
            for window in windows:
                if cancel is not None and cancel.is_set():
                    stats.cancelled = True
                    break
                rows = self.fetch(region_source, window)
                pending.append(pool.submit(compute_window, window, rows, self.settings))
                if len(pending) >= max_in_flight:
                    emit_next()

            while pending:
                if cancel is not None and cancel.is_set():
                    stats.cancelled = True
                    for future in pending:
                        future.cancel()
                    pending.clear()
                    break
                emit_next()

        return stats

"""Output writers for vcfwindows.

This module writes window results to a set of tab-separated tables
sharing one output prefix:

- ``{prefix}_samples.tsv``: per-sample genotype counts
- ``{prefix}_diversity.tsv``: per-population pi and per-pair Dxy
- ``{prefix}_polymorphism.tsv``: per-population site classes
- ``{prefix}_tstv.tsv``: transition/transversion statistics per pair
- ``{prefix}_ld.tsv``: window LD summary

The column layout of every table is fixed when the writer is opened.
All rows of a window are rendered before any is written, and every
table is flushed after each window.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from vcfwindows.utils.logging import get_logger

if TYPE_CHECKING:
    from vcfwindows.analysis.engine import EngineConfig
    from vcfwindows.analysis.populations import PopulationLayout
    from vcfwindows.core.models import WindowResult

logger = get_logger(__name__)

MISSING_VALUE = "NA"
WINDOW_COLUMNS = ["contig", "startbp", "endbp", "totalbp"]
ANNOTATION_COLUMNS = ["ncoding", "low_mono", "low_poly", "high_mono", "high_poly"]
LD_COLUMNS = ["nrsnps", "nrpairs_all", "dist_all", "LD_all"]


def format_float(value: float) -> str:
    """Format a statistic with six decimals, ``NA`` when undefined.

    Examples:
        >>> format_float(0.625)
        '0.625000'
        >>> format_float(float("nan"))
        'NA'
    """
    if value is None or not math.isfinite(value):
        return MISSING_VALUE
    return f"{value:.6f}"


def table_paths(prefix: str | Path) -> dict[str, Path]:
    """Paths of every table for an output prefix."""
    prefix = Path(prefix)
    return {
        name: prefix.with_name(f"{prefix.name}_{name}.tsv")
        for name in ("samples", "diversity", "polymorphism", "tstv", "ld")
    }


class OutputWriter:
    """Appends one row per window to each enabled table.

    Use as a context manager; files are opened and headers written on
    entry and closed on exit.

    Args:
        prefix: Output prefix; table names are appended to it.
        samples: Sample names in VCF order.
        config: Run configuration deciding which tables are written.
        layout: Population layout, or None to skip population tables.

    Example:
        >>> with OutputWriter("out/run1", samples, config, layout) as writer:
        ...     engine.run(contigs, source, writer)
    """

    def __init__(
        self,
        prefix: str | Path,
        samples: list[str],
        config: EngineConfig,
        layout: PopulationLayout | None = None,
    ) -> None:
        self.prefix = Path(prefix)
        self.n_samples = len(samples)
        self.config = config
        self.layout = layout
        self.n_rows: dict[str, int] = {}
        self._files: dict[str, TextIO] = {}

        self.headers = self._build_headers()
        paths = table_paths(self.prefix)
        self.paths = {name: paths[name] for name in self.headers}

    def _pair_labels(self) -> list[str]:
        return [f"{i + 1}_{j + 1}" for i, j in self.layout.pairs]

    def _build_headers(self) -> dict[str, list[str]]:
        config = self.config
        headers: dict[str, list[str]] = {}

        if config.sample_stats:
            columns = list(WINDOW_COLUMNS)
            if config.annotated:
                columns += ANNOTATION_COLUMNS
            for i in range(1, self.n_samples + 1):
                columns += [f"nmiss_{i}", f"nsites_{i}", f"nhet_{i}", f"nhomo_{i}"]
            headers["samples"] = columns

        if self.layout is not None:
            pops = range(1, self.layout.n_populations + 1)
            pairs = self._pair_labels()

            columns = WINDOW_COLUMNS + ["npoly"] + [f"pi_{p}" for p in pops]
            if config.pairs:
                columns += [f"dxy_{pair}" for pair in pairs]
            headers["diversity"] = columns

            columns = WINDOW_COLUMNS + ["npoly"]
            for p in pops:
                columns += [f"npoly_{p}", f"nmono_{p}", f"nmiss_{p}"]
            headers["polymorphism"] = columns

            if config.tstv:
                columns = WINDOW_COLUMNS + ["npoly", "nts", "ntv"]
                for pair in pairs:
                    columns += [f"meanpopts_{pair}", f"meanpoptv_{pair}"]
                    if config.pairs:
                        columns += [f"pairts_{pair}", f"pairtv_{pair}"]
                headers["tstv"] = columns

        if config.ld:
            headers["ld"] = WINDOW_COLUMNS + LD_COLUMNS

        return headers

    def render(self, result: WindowResult) -> dict[str, list[str]]:
        """Render the rows of one window.

        Returns:
            Table name to field list; tables without a row for this
            window (an omitted empty LD summary) are absent.
        """
        w = result.window
        base = [w.contig, str(w.start_bp), str(w.end_bp), str(result.n_sites)]
        rows: dict[str, list[str]] = {}

        if "samples" in self.headers:
            fields = list(base)
            if self.config.annotated:
                a = result.annotation
                fields += [
                    str(a.n_coding), str(a.low_mono), str(a.low_poly),
                    str(a.high_mono), str(a.high_poly),
                ]
            for c in result.sample_counts:
                fields += [str(c.n_missing), str(c.n_called), str(c.n_het), str(c.n_hom_alt)]
            rows["samples"] = fields

        if "diversity" in self.headers:
            fields = base + [str(result.n_variable)]
            fields += [format_float(p.pi) for p in result.population_stats]
            if self.config.pairs:
                fields += [format_float(p.dxy) for p in result.pair_stats]
            rows["diversity"] = fields

        if "polymorphism" in self.headers:
            fields = base + [str(result.n_variable)]
            for p in result.population_stats:
                fields += [str(p.n_poly), str(p.n_mono), str(p.n_missing_sites)]
            rows["polymorphism"] = fields

        if "tstv" in self.headers:
            fields = base + [str(result.n_variable), str(result.n_ts), str(result.n_tv)]
            for p in result.pair_stats:
                fields += [format_float(p.mean_pop_ts), format_float(p.mean_pop_tv)]
                if self.config.pairs:
                    fields += [format_float(p.pair_ts), format_float(p.pair_tv)]
            rows["tstv"] = fields

        if "ld" in self.headers and result.ld is not None:
            ld = result.ld
            rows["ld"] = base + [
                str(ld.n_snps),
                str(ld.n_pairs),
                format_float(ld.mean_distance),
                format_float(ld.mean_r2),
            ]

        for name, fields in rows.items():
            if len(fields) != len(self.headers[name]):
                raise ValueError(
                    f"{name} row for {w.region} has {len(fields)} fields, "
                    f"header has {len(self.headers[name])}"
                )
        return rows

    def open(self) -> None:
        """Create the tables and write their headers."""
        for name, path in self.paths.items():
            f = open(path, "w")
            f.write("\t".join(self.headers[name]) + "\n")
            f.flush()
            self._files[name] = f
            self.n_rows[name] = 0
        logger.info(f"Writing {len(self.paths)} table(s) with prefix {self.prefix}")

    def write(self, result: WindowResult) -> None:
        """Append the rows of one window and flush every table."""
        rows = self.render(result)
        for name, fields in rows.items():
            self._files[name].write("\t".join(fields) + "\n")
            self.n_rows[name] += 1
        for f in self._files.values():
            f.flush()

    def close(self) -> None:
        for f in self._files.values():
            f.close()
        self._files = {}
        for name, path in self.paths.items():
            logger.debug(f"Wrote {self.n_rows.get(name, 0):,} rows to {path}")

    def __enter__(self) -> OutputWriter:
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

"""Command-line interface for vcfwindows.

This module defines the Click-based CLI for the vcfwindows package,
providing commands for windowed population-genetics statistics on
all-sites VCF data.
"""

from __future__ import annotations

import signal
import threading
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from vcfwindows import __version__
from vcfwindows.analysis.engine import EngineConfig, WindowEngine
from vcfwindows.analysis.ld import LDEmptyPolicy
from vcfwindows.analysis.populations import PopulationLayout
from vcfwindows.analysis.windows import WindowIterator
from vcfwindows.core.genotypes import MalformedPolicy
from vcfwindows.core.models import GenotypeMode
from vcfwindows.io.readers import read_contig_file, read_population_file
from vcfwindows.io.summary import RunSummary, write_summary
from vcfwindows.io.vcf import get_sample_names, open_region_source, read_contig_lengths
from vcfwindows.io.writers import OutputWriter
from vcfwindows.utils.errors import VCFWindowsError, display_error
from vcfwindows.utils.logging import (
    print_error,
    print_file_created,
    print_info,
    print_stats,
    print_success,
    print_warning,
    setup_logging,
)
from vcfwindows.utils.validation import (
    ValidationError,
    validate_contigs,
    validate_output_path,
    validate_parameters,
    validate_vcf,
)

console = Console(stderr=True)

# Context settings for all commands
CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

DEFAULT_MIN_CONTIG_LENGTH = 5_000_000


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="vcfwindows")
@click.option(
    "--verbose", "-v", is_flag=True, default=False, help="Enable verbose output"
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """vcfwindows: windowed population-genetics statistics from VCF files.

    Splits every contig into fixed-size windows and reports per-sample
    heterozygosity, per-population diversity, pairwise divergence,
    transition/transversion statistics and linkage disequilibrium.

    \b
    Quick start:
        vcfwindows run --vcf allsites.vcf.gz --populations pops.txt -o results

    \b
    Common workflows:
        vcfwindows samples --vcf data.vcf.gz      # List sample names
        vcfwindows contigs --vcf data.vcf.gz      # Contigs that will be scanned
        vcfwindows run --vcf data.vcf.gz ...      # Full analysis
    """
    import logging

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    setup_logging(level=level)


@cli.command()
@click.option(
    "--vcf",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    metavar="FILE",
    help="Input VCF file.",
)
def samples(vcf: Path) -> None:
    """List sample names in a VCF file.

    Samples are numbered in VCF order; these are the numbers used in
    the column names of the samples table (nhet_1, nhet_2, ...).

    \b
    Example:
        vcfwindows samples --vcf allsites.vcf.gz
    """
    try:
        sample_names = get_sample_names(vcf)
    except Exception as e:
        display_error(f"Failed to read VCF: {e}")
        raise SystemExit(1) from e

    if not sample_names:
        display_error("No samples found in VCF file")
        raise SystemExit(1)

    console.print(f"\n[bold]Samples in {vcf.name}:[/bold]\n")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Number", justify="right", style="dim")
    table.add_column("Sample Name")

    for i, name in enumerate(sample_names, start=1):
        table.add_row(str(i), name)

    console.print(table)
    console.print(f"\n[dim]Total: {len(sample_names)} sample(s)[/dim]\n")


@cli.command()
@click.option(
    "--vcf",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    metavar="FILE",
    help="Input VCF file.",
)
@click.option(
    "--min-length",
    default=DEFAULT_MIN_CONTIG_LENGTH,
    show_default=True,
    type=int,
    metavar="BP",
    help="Minimum contig length.",
)
@click.option(
    "--window-size",
    default=20_000,
    show_default=True,
    type=int,
    metavar="BP",
    help="Window size used to count windows per contig.",
)
def contigs(vcf: Path, min_length: int, window_size: int) -> None:
    """List the contigs a run would scan.

    Reads ##contig header lines and keeps contigs of at least
    --min-length bp.

    \b
    Example:
        vcfwindows contigs --vcf allsites.vcf.gz --min-length 1000000
    """
    try:
        selected = read_contig_lengths(vcf, min_length=min_length)
        windows = WindowIterator(selected, window_size)
    except (VCFWindowsError, ValueError) as e:
        display_error(str(e))
        raise SystemExit(1) from e

    if not selected:
        print_warning(f"No contigs of at least {min_length:,} bp in {vcf.name}")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Contig")
    table.add_column("Length (bp)", justify="right")
    table.add_column("Windows", justify="right")

    for contig in selected:
        table.add_row(
            contig.name,
            f"{contig.length_bp:,}",
            f"{len(windows.windows_for(contig.name)):,}",
        )

    console.print(table)
    console.print(
        f"\n[dim]Total: {len(selected)} contig(s), {len(windows):,} window(s)[/dim]\n"
    )


@cli.command()
@click.option(
    "--vcf",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    metavar="FILE",
    help="Input all-sites VCF file (bgzipped and indexed, or plain).",
)
@click.option(
    "--out",
    "-o",
    required=True,
    type=click.Path(path_type=Path),
    metavar="PREFIX",
    help="Output prefix. Files will be named {PREFIX}_samples.tsv, etc.",
)
@click.option(
    "--window-size",
    default=20_000,
    show_default=True,
    type=int,
    metavar="BP",
    help="Window size in base pairs.",
)
@click.option(
    "--min-contig-length",
    default=DEFAULT_MIN_CONTIG_LENGTH,
    show_default=True,
    type=int,
    metavar="BP",
    help="Skip contigs shorter than this (ignored with --contigs).",
)
@click.option(
    "--contigs",
    "contig_file",
    default=None,
    type=click.Path(exists=True, path_type=Path),
    metavar="FILE",
    help="Tab-separated contig<TAB>length list, scanned in file order.",
)
@click.option(
    "--populations",
    default=None,
    type=click.Path(exists=True, path_type=Path),
    metavar="FILE",
    help="Tab-separated sample<TAB>population file. Enables population tables.",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in GenotypeMode]),
    default=GenotypeMode.BIALLELIC.value,
    show_default=True,
    help="Genotype tokens counted as heterozygous / homozygous-alt.",
)
@click.option(
    "--on-malformed",
    type=click.Choice([p.value for p in MalformedPolicy]),
    default=MalformedPolicy.ABORT.value,
    show_default=True,
    help="Abort on unrecognized genotypes, or count them as missing.",
)
@click.option(
    "--sample-stats/--no-sample-stats",
    default=True,
    show_default=True,
    help="Write per-sample heterozygosity counts.",
)
@click.option(
    "--pairs/--no-pairs",
    default=True,
    show_default=True,
    help="Compute Dxy and between-population ts/tv for population pairs.",
)
@click.option(
    "--tstv/--no-tstv",
    default=True,
    show_default=True,
    help="Write transition/transversion statistics.",
)
@click.option(
    "--ld/--no-ld",
    default=True,
    show_default=True,
    help="Write window linkage disequilibrium summaries.",
)
@click.option(
    "--ld-window-bp",
    default=1000,
    show_default=True,
    type=int,
    metavar="BP",
    help="Maximum distance between site pairs for LD.",
)
@click.option(
    "--ld-min-mac",
    default=12,
    show_default=True,
    type=int,
    metavar="INT",
    help="Minimum minor allele count of LD sites.",
)
@click.option(
    "--ld-empty",
    type=click.Choice([p.value for p in LDEmptyPolicy]),
    default=LDEmptyPolicy.EMIT.value,
    show_default=True,
    help="Write an NA row, or no row, for windows without LD pairs.",
)
@click.option(
    "--annotated",
    is_flag=True,
    default=False,
    help="Input is an annotated all-sites VCF (monomorphic ALT is A,C,G,T).",
)
@click.option(
    "--workers",
    default=1,
    show_default=True,
    type=int,
    metavar="INT",
    help="Worker processes for window statistics.",
)
@click.option(
    "--fetch-retries",
    default=0,
    show_default=True,
    type=int,
    metavar="INT",
    help="Extra attempts when reading a window fails.",
)
@click.option(
    "--keep-indels",
    is_flag=True,
    default=False,
    help="Keep records whose INFO contains INDEL.",
)
@click.option(
    "--progress/--no-progress",
    default=True,
    show_default=True,
    help="Show a progress bar.",
)
@click.pass_context
def run(
    ctx: click.Context,
    vcf: Path,
    out: Path,
    window_size: int,
    min_contig_length: int,
    contig_file: Path | None,
    populations: Path | None,
    mode: str,
    on_malformed: str,
    sample_stats: bool,
    pairs: bool,
    tstv: bool,
    ld: bool,
    ld_window_bp: int,
    ld_min_mac: int,
    ld_empty: str,
    annotated: bool,
    workers: int,
    fetch_retries: int,
    keep_indels: bool,
    progress: bool,
) -> None:
    """Compute window statistics for every contig.

    \b
    Examples:
      Per-sample heterozygosity only:
        vcfwindows run --vcf allsites.vcf.gz -o results --no-ld

      Populations, four workers, 100 kb windows:
        vcfwindows run --vcf allsites.vcf.gz --populations pops.txt \\
            --window-size 100000 --workers 4 -o results

    \b
    Output files:
      {PREFIX}_samples.tsv       Per-sample counts (unless --no-sample-stats)
      {PREFIX}_diversity.tsv     pi per population, Dxy per pair (--populations)
      {PREFIX}_polymorphism.tsv  Site classes per population (--populations)
      {PREFIX}_tstv.tsv          Transition/transversion statistics (--populations)
      {PREFIX}_ld.tsv            LD summary (unless --no-ld)
      {PREFIX}_summary.txt       Run summary
    """
    config = EngineConfig(
        window_size=window_size,
        mode=GenotypeMode(mode),
        on_malformed=MalformedPolicy(on_malformed),
        sample_stats=sample_stats,
        pairs=pairs,
        tstv=tstv,
        ld=ld,
        ld_window_bp=ld_window_bp,
        ld_min_mac=ld_min_mac,
        ld_empty=LDEmptyPolicy(ld_empty),
        annotated=annotated,
        workers=workers,
        fetch_retries=fetch_retries,
    )

    print_info("Starting window analysis")
    print_info(f"Input VCF: {vcf}")
    print_info(f"Output prefix: {out}")
    print_info(f"Window: {window_size:,} bp, mode: {mode}")

    tables: list[Path] = []
    try:
        validate_parameters(config)
        vcf_info = validate_vcf(vcf)
        sample_names = vcf_info["samples"]

        if contig_file is not None:
            selected = read_contig_file(contig_file)
        else:
            selected = read_contig_lengths(vcf, min_length=min_contig_length)
        validate_contigs(selected, vcf_info["contigs"])

        layout = None
        if populations is not None:
            layout = PopulationLayout.from_mapping(
                sample_names, read_population_file(populations)
            )
        elif pairs or tstv:
            print_info("No --populations given; population tables are skipped")

        out = validate_output_path(out)
        windows_total = len(WindowIterator(selected, window_size))

        engine = WindowEngine(config=config, samples=sample_names, layout=layout)
        cancel = threading.Event()
        previous_handler = signal.signal(signal.SIGINT, lambda *_: cancel.set())
        try:
            with open_region_source(vcf, skip_indels=not keep_indels) as source, OutputWriter(
                out, sample_names, config, layout
            ) as writer:
                tables = list(writer.paths.values())
                stats = engine.run(
                    selected, source, writer, cancel=cancel, show_progress=progress
                )
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        summary = RunSummary(
            vcf_path=str(vcf),
            samples=sample_names,
            populations=list(layout.names) if layout else [],
            contigs=[c.name for c in selected],
            windows_written=stats.n_windows,
            windows_total=windows_total,
            sites=stats.n_sites,
            variable_sites=stats.n_variable,
            malformed_tokens=stats.n_malformed,
            tables=[str(t) for t in tables],
            parameters=config.to_dict(),
            cancelled=stats.cancelled,
        )
        out_summary = Path(f"{out}_summary.txt")
        write_summary(summary, out_summary)

    except VCFWindowsError as e:
        e.display()
        if tables:
            print_error(
                f"Run aborted; {len(tables)} table(s) hold only the windows "
                "written before the error"
            )
        if ctx.obj.get("verbose"):
            console.print_exception()
        raise SystemExit(1) from e
    except (ValidationError, FileNotFoundError, ValueError) as e:
        display_error(str(e))
        raise SystemExit(1) from e

    print_stats(
        {
            "Samples": len(sample_names),
            "Populations": len(layout.names) if layout else 0,
            "Contigs": len(selected),
            "Windows written": stats.n_windows,
            "Sites read": stats.n_sites,
            "Variable sites": stats.n_variable,
            "Malformed genotypes": stats.n_malformed,
        },
        title="Run Summary",
    )

    if stats.cancelled:
        print_warning(
            f"Run cancelled after {stats.n_windows:,} of {windows_total:,} windows"
        )
        raise SystemExit(130)

    print_success("Analysis complete!")
    print_info("Output files:")
    for table in tables:
        print_file_created(table)
    print_file_created(out_summary)


def main() -> None:
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()

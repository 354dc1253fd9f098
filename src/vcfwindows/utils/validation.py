"""Input validation utilities for vcfwindows.

This module provides functions for validating the VCF, the run
parameters and the output prefix before any window is processed.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from vcfwindows.utils.errors import format_file_not_found
from vcfwindows.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vcfwindows.analysis.engine import EngineConfig
    from vcfwindows.core.models import Contig

logger = get_logger(__name__)


class ValidationError(Exception):
    """Raised when input validation fails."""

    pass


def validate_vcf(vcf_path: str | Path) -> dict:
    """Validate VCF file and return metadata.

    Checks:
    - File exists and is readable
    - Valid VCF format
    - Declares the GT FORMAT field
    - Has at least 1 sample

    Args:
        vcf_path: Path to VCF file.

    Returns:
        dict with keys: samples, contigs, indexed

    Raises:
        ValidationError: If validation fails.
    """
    from cyvcf2 import VCF

    from vcfwindows.io.vcf import has_index

    vcf_path = Path(vcf_path)

    if not vcf_path.exists():
        raise ValidationError(format_file_not_found(vcf_path, "VCF file"))

    try:
        vcf = VCF(str(vcf_path))
    except Exception as e:
        raise ValidationError(f"Cannot read VCF file: {e}") from e

    samples = list(vcf.samples)
    if not samples:
        vcf.close()
        raise ValidationError(
            "VCF contains no samples. Window statistics need genotype columns."
        )

    has_gt = False
    contigs = []
    for header in vcf.header_iter():
        if header["HeaderType"] == "FORMAT" and header["ID"] == "GT":
            has_gt = True
        elif header["HeaderType"] == "CONTIG":
            contigs.append(header["ID"])
    vcf.close()

    if not has_gt:
        raise ValidationError(
            "VCF does not contain GT (genotype) FORMAT field. "
            "This is required for window statistics."
        )

    return {
        "samples": samples,
        "contigs": contigs,
        "indexed": has_index(vcf_path),
    }


def validate_parameters(config: EngineConfig) -> None:
    """Validate run parameters.

    Checks:
    - window_size > 0
    - workers >= 1
    - fetch_retries >= 0
    - ld_window_bp > 0 and ld_min_mac >= 0 when LD is enabled

    Args:
        config: Run configuration.

    Raises:
        ValidationError: If any parameter is invalid.
    """
    if config.window_size <= 0:
        raise ValidationError(f"window_size must be positive, got {config.window_size}")

    if config.workers < 1:
        raise ValidationError(f"workers must be at least 1, got {config.workers}")

    if config.fetch_retries < 0:
        raise ValidationError(
            f"fetch_retries cannot be negative, got {config.fetch_retries}"
        )

    if config.ld:
        if config.ld_window_bp <= 0:
            raise ValidationError(
                f"ld_window_bp must be positive, got {config.ld_window_bp}"
            )
        if config.ld_min_mac < 0:
            raise ValidationError(f"ld_min_mac cannot be negative, got {config.ld_min_mac}")


def validate_contigs(contigs: Sequence[Contig], vcf_contigs: Sequence[str] = ()) -> None:
    """Validate the contigs selected for a run.

    Args:
        contigs: Contigs to scan.
        vcf_contigs: Contig names declared in the VCF header; when given,
            selected contigs missing from it are reported as warnings.

    Raises:
        ValidationError: If no contig is selected or a length is not positive.
    """
    if not contigs:
        raise ValidationError(
            "No contigs to scan.\n\n"
            "Hint: Lower --min-contig-length, or pass a contig list with --contigs."
        )

    for contig in contigs:
        if contig.length_bp <= 0:
            raise ValidationError(
                f"Contig {contig.name} has non-positive length {contig.length_bp}"
            )

    if vcf_contigs:
        declared = set(vcf_contigs)
        unknown = [c.name for c in contigs if c.name not in declared]
        if unknown:
            logger.warning(
                f"{len(unknown)} contig(s) not declared in the VCF header: "
                f"{', '.join(unknown[:5])}"
            )


def validate_output_path(out_prefix: str | Path) -> Path:
    """Validate output path and create parent directories.

    Checks:
    - Parent directory exists or can be created
    - Path is writable

    Args:
        out_prefix: Output prefix path.

    Returns:
        Resolved Path object.

    Raises:
        ValidationError: If path is invalid or not writable.
    """
    out_path = Path(out_prefix).resolve()
    parent = out_path.parent

    if not parent.exists():
        try:
            parent.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created output directory: {parent}")
        except OSError as e:
            raise ValidationError(
                f"Cannot create output directory: {parent}\n"
                f"Error: {e}"
            ) from e

    if not parent.is_dir():
        raise ValidationError(f"Output path parent is not a directory: {parent}")

    test_file = parent / f".vcfwindows_write_test_{out_path.name}"
    try:
        test_file.touch()
        test_file.unlink()
    except OSError as e:
        raise ValidationError(
            f"Output directory is not writable: {parent}\n"
            f"Error: {e}"
        ) from e

    return out_path

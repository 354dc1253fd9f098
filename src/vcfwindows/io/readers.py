"""Plain-text input and table readers for vcfwindows.

This module reads the small tab-separated side inputs of a run (the
population file and an optional contig list) and reads window tables
written by a previous run back into rows.
"""

from __future__ import annotations

from pathlib import Path

from vcfwindows.core.models import Contig
from vcfwindows.utils.errors import format_file_not_found
from vcfwindows.utils.logging import get_logger

logger = get_logger(__name__)


def _data_lines(path: Path):
    """Yield (line number, fields) for non-blank, non-comment lines."""
    with open(path) as f:
        for line_num, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            yield line_num, line.split("\t")


def read_population_file(path: str | Path) -> dict[str, str]:
    """Read a sample-to-population mapping.

    Expects two tab-separated columns: sample name and population
    label. Blank lines and lines starting with ``#`` are ignored.

    Args:
        path: Path to the population file.

    Returns:
        Dict mapping sample name to population label.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If a line has fewer than two columns or a sample is
            listed twice with different labels.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(format_file_not_found(path, "Population file"))

    mapping: dict[str, str] = {}
    for line_num, fields in _data_lines(path):
        if len(fields) < 2:
            raise ValueError(
                f"{path}:{line_num}: expected 'sample<TAB>population', got {fields!r}"
            )
        sample, label = fields[0].strip(), fields[1].strip()
        if mapping.get(sample, label) != label:
            raise ValueError(
                f"{path}:{line_num}: sample {sample} assigned to both "
                f"{mapping[sample]} and {label}"
            )
        mapping[sample] = label

    logger.info(
        f"Read {len(mapping)} sample(s) in {len(set(mapping.values()))} population(s) "
        f"from {path}"
    )
    return mapping


def read_contig_file(path: str | Path) -> list[Contig]:
    """Read a contig list.

    Expects two tab-separated columns: contig name and length in bp.
    Contigs are returned in file order, which is also the output order.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If a line is malformed or a contig is listed twice.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(format_file_not_found(path, "Contig file"))

    contigs = []
    seen = set()
    for line_num, fields in _data_lines(path):
        try:
            name, length = fields[0], int(fields[1])
        except (IndexError, ValueError) as e:
            raise ValueError(
                f"{path}:{line_num}: expected 'contig<TAB>length', got {fields!r}"
            ) from e
        if name in seen:
            raise ValueError(f"{path}:{line_num}: contig {name} listed twice")
        seen.add(name)
        contigs.append(Contig(name=name, length_bp=length))

    logger.info(f"Read {len(contigs)} contig(s) from {path}")
    return contigs


def read_window_table(path: str | Path) -> list[dict[str, str]]:
    """Read a window table written by a run.

    Args:
        path: Path to one of the ``*.tsv`` output tables.

    Returns:
        One dict per row, keyed by column name, with values as written
        (``NA`` stays a string).

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If a row does not match the header width.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(format_file_not_found(path, "Window table"))

    with open(path) as f:
        header = f.readline().rstrip("\n").split("\t")
        rows = []
        for line_num, line in enumerate(f, start=2):
            fields = line.rstrip("\n").split("\t")
            if len(fields) != len(header):
                raise ValueError(
                    f"{path}:{line_num}: {len(fields)} fields, header has {len(header)}"
                )
            rows.append(dict(zip(header, fields)))
    return rows

"""Run summary report for vcfwindows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from vcfwindows import __version__
from vcfwindows.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RunSummary:
    """What a run read, computed and wrote.

    Attributes:
        vcf_path: Path to the input VCF file.
        samples: Sample names in VCF order (numbered from 1 in the tables).
        populations: Population labels in table order.
        contigs: Names of the scanned contigs.
        windows_written: Windows with rows in the output tables.
        windows_total: Windows the contigs partition into.
        sites: Genotype rows read inside windows.
        variable_sites: Rows with an ALT allele.
        malformed_tokens: Genotype tokens counted as missing by policy.
        tables: Paths of the written tables.
        parameters: Run parameters.
        cancelled: Whether the run stopped early.
    """

    vcf_path: str
    samples: list[str]
    populations: list[str]
    contigs: list[str]
    windows_written: int
    windows_total: int
    sites: int
    variable_sites: int
    malformed_tokens: int = 0
    tables: list[str] = field(default_factory=list)
    parameters: dict[str, Any] = field(default_factory=dict)
    cancelled: bool = False

    def to_text(self) -> str:
        """Format summary as human-readable text."""
        lines = [
            "=" * 70,
            "vcfwindows Run Summary",
            "=" * 70,
            f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"Version: {__version__}",
            "",
            "INPUT",
            "-" * 70,
            f"VCF file: {self.vcf_path}",
            f"Samples: {len(self.samples)}",
        ]
        for i, sample in enumerate(self.samples, start=1):
            lines.append(f"  {i}: {sample}")

        if self.populations:
            lines.append(f"Populations: {len(self.populations)}")
            for i, population in enumerate(self.populations, start=1):
                lines.append(f"  {i}: {population}")

        lines.extend([
            f"Contigs: {len(self.contigs)}",
            "",
            "WINDOWS",
            "-" * 70,
            f"Windows written: {self.windows_written:,} of {self.windows_total:,}",
            f"Sites read: {self.sites:,}",
            f"Variable sites: {self.variable_sites:,}",
            f"Malformed genotypes counted as missing: {self.malformed_tokens:,}",
        ])
        if self.cancelled:
            lines.append("Run was CANCELLED; tables hold the completed windows only.")

        lines.extend(["", "OUTPUT", "-" * 70])
        lines.extend(f"  {table}" for table in self.tables)

        lines.extend(["", "PARAMETERS", "-" * 70])
        for key, value in sorted(self.parameters.items()):
            if isinstance(value, int) and not isinstance(value, bool):
                lines.append(f"  {key}: {value:,}")
            else:
                lines.append(f"  {key}: {value}")

        lines.extend(["", "=" * 70])
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": __version__,
            "timestamp": datetime.now().isoformat(),
            "input": {
                "vcf_path": self.vcf_path,
                "samples": self.samples,
                "populations": self.populations,
                "contigs": self.contigs,
            },
            "windows": {
                "written": self.windows_written,
                "total": self.windows_total,
                "sites": self.sites,
                "variable_sites": self.variable_sites,
                "malformed_tokens": self.malformed_tokens,
            },
            "tables": self.tables,
            "parameters": self.parameters,
            "cancelled": self.cancelled,
        }


def write_summary(summary: RunSummary, path: str | Path) -> None:
    """Write summary report to text file.

    Args:
        summary: RunSummary object to write.
        path: Output file path.
    """
    path = Path(path)
    logger.info(f"Writing summary to {path}")

    with open(path, "w") as f:
        f.write(summary.to_text())
        f.write("\n")

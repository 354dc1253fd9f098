"""Exceptions and user-facing error messages for vcfwindows.

Every error raised on purpose by the package derives from
VCFWindowsError, which carries an optional suggestion and knows how to
render itself in a rich panel for the command line.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.panel import Panel

console = Console(stderr=True)


class VCFWindowsError(Exception):
    """Base exception for vcfwindows errors with user-friendly formatting."""

    def __init__(self, message: str, suggestion: str | None = None):
        """Initialize error with message and optional suggestion.

        Args:
            message: Main error message.
            suggestion: Optional suggestion for how to fix the error.
        """
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def display(self) -> None:
        """Display the error in a formatted panel."""
        display_error(self.message, self.suggestion)


class MalformedGenotypeError(VCFWindowsError):
    """Raised when a genotype token is not recognized for the active mode."""

    def __init__(self, token: str, mode: str):
        self.token = token
        self.mode = mode
        super().__init__(
            f"Unrecognized genotype {token!r} in {mode} mode",
            suggestion=format_malformed_hint(mode),
        )
        # Rebuildable from args when raised inside a worker process
        self.args = (token, mode)


class RegionSourceError(VCFWindowsError):
    """Raised when genotype rows for a window cannot be retrieved.

    This is always fatal: skipping a window would break the ordering
    of the output tables.
    """


def format_malformed_hint(mode: str) -> str:
    """Suggest a fix for an unrecognized genotype token.

    Args:
        mode: Genotype mode that rejected the token.

    Returns:
        Suggestion text.
    """
    if mode == "biallelic":
        return (
            "Use --mode multiallelic if the VCF contains genotypes such as 0/2 or 1/2, "
            "or --on-malformed missing to count unrecognized calls as missing."
        )
    return "Use --on-malformed missing to count unrecognized calls as missing."


def format_file_not_found(path: str | Path, file_type: str = "File") -> str:
    """Format a file not found error message.

    Args:
        path: Path to the missing file.
        file_type: Type of file (e.g., "VCF file", "Population file").

    Returns:
        Formatted error message.
    """
    path = Path(path)
    msg = f"{file_type} not found: {path}"

    if not path.parent.exists():
        msg += f"\n\nThe parent directory does not exist: {path.parent}"
        msg += "\nCreate the directory first or check the path."

    return msg


def format_missing_index(vcf_path: str | Path) -> str:
    """Format an error for a region query against an unindexed VCF."""
    msg = f"No tabix or CSI index found for {vcf_path}\n\n"
    msg += "Region queries need a bgzipped, indexed VCF:\n"
    msg += f"  bgzip {vcf_path}\n"
    msg += f"  tabix -p vcf {vcf_path}.gz"
    return msg


def display_error(message: str, suggestion: str | None = None) -> None:
    """Display an error message in a formatted panel.

    Args:
        message: Main error message.
        suggestion: Optional suggestion for fixing the error.
    """
    content = f"[red bold]Error:[/red bold] {message}"
    if suggestion:
        content += f"\n\n[yellow]Suggestion:[/yellow] {suggestion}"
    console.print(Panel(content, title="vcfwindows Error", border_style="red"))

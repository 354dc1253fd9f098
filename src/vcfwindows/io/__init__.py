"""I/O utilities for vcfwindows."""

from vcfwindows.io.readers import (
    read_contig_file,
    read_population_file,
    read_window_table,
)
from vcfwindows.io.summary import RunSummary, write_summary
from vcfwindows.io.vcf import (
    IndexedRegionSource,
    StreamingRegionSource,
    get_sample_names,
    open_region_source,
    read_contig_lengths,
)
from vcfwindows.io.writers import OutputWriter, format_float

__all__ = [
    # VCF
    "IndexedRegionSource",
    "StreamingRegionSource",
    "get_sample_names",
    "open_region_source",
    "read_contig_lengths",
    # Readers
    "read_contig_file",
    "read_population_file",
    "read_window_table",
    # Writers
    "OutputWriter",
    "format_float",
    # Summary
    "RunSummary",
    "write_summary",
]

"""Analysis modules for vcfwindows."""

from vcfwindows.analysis.engine import (
    EngineConfig,
    EngineStats,
    RegionSource,
    WindowEngine,
    annotation_counts,
    compute_window,
)
from vcfwindows.analysis.ld import (
    CorrelationSource,
    GenotypeCorrelationSource,
    LDAggregator,
    LDEmptyPolicy,
    summarize_ld,
)
from vcfwindows.analysis.populations import (
    AlleleFrequencyCalculator,
    PopulationLayout,
    pair_divergence,
    population_window_stats,
)
from vcfwindows.analysis.samples import SampleStatsAggregator, aggregate_sample_counts
from vcfwindows.analysis.tstv import classify_substitution, tstv_pair_stats
from vcfwindows.analysis.windows import WindowIterator, count_windows

__all__ = [
    # Windows
    "WindowIterator",
    "count_windows",
    # Samples
    "SampleStatsAggregator",
    "aggregate_sample_counts",
    # Populations
    "AlleleFrequencyCalculator",
    "PopulationLayout",
    "pair_divergence",
    "population_window_stats",
    # Transitions / transversions
    "classify_substitution",
    "tstv_pair_stats",
    # LD
    "CorrelationSource",
    "GenotypeCorrelationSource",
    "LDAggregator",
    "LDEmptyPolicy",
    "summarize_ld",
    # Engine
    "EngineConfig",
    "EngineStats",
    "RegionSource",
    "WindowEngine",
    "annotation_counts",
    "compute_window",
]

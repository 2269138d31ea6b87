"""
Gap analysis module

Static per-field thresholds per assessment type and the pure functions
evaluating them.
"""

from .standards import (
    GapIndicator,
    SeverityBands,
    ImpactThresholds,
    GAP_INDICATORS,
    SEVERITY_BANDS,
    POPULATION_IMPACT_THRESHOLDS,
)
from .analyzer import (
    GapResult,
    GapSummary,
    TypeGapShare,
    analyze_gaps,
    population_impact_severity,
    entity_gap_level,
    type_gap_level,
    summarize_gaps,
)
from .schemas import GapAnalysisResponse, GapSummaryResponse

__all__ = [
    # Standards
    "GapIndicator",
    "SeverityBands",
    "ImpactThresholds",
    "GAP_INDICATORS",
    "SEVERITY_BANDS",
    "POPULATION_IMPACT_THRESHOLDS",
    # Analysis
    "GapResult",
    "GapSummary",
    "TypeGapShare",
    "analyze_gaps",
    "population_impact_severity",
    "entity_gap_level",
    "type_gap_level",
    "summarize_gaps",
    # Schemas
    "GapAnalysisResponse",
    "GapSummaryResponse",
]

"""
Gap analysis

Pure functions from assessment field values to severity-tagged gaps, plus
the roll-ups used by the dashboard. Nothing here touches the database.

Usage:
    result = analyze_gaps(AssessmentType.FOOD, {
        "is_food_sufficient": False,
        "has_regular_meal_access": True,
        "has_infant_nutrition": True,
    })
    result.severity  # Priority.MEDIUM
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, Mapping

from drms.core.enums import AssessmentType, Priority

from .standards import (
    GAP_INDICATORS,
    POPULATION_IMPACT_THRESHOLDS,
    SEVERITY_BANDS,
    TYPE_GAP_LEVELS,
)


@dataclass(frozen=True)
class GapResult:
    assessment_type: AssessmentType
    has_gap: bool
    gap_fields: tuple[str, ...]
    severity: Priority
    recommendations: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "assessment_type": self.assessment_type.value,
            "has_gap": self.has_gap,
            "gap_fields": list(self.gap_fields),
            "severity": self.severity.value,
            "recommendations": list(self.recommendations),
        }


@dataclass
class TypeGapShare:
    entities_with_gap: int = 0
    entities_assessed: int = 0

    @property
    def percentage(self) -> float:
        if not self.entities_assessed:
            return 0.0
        return round(self.entities_with_gap * 100.0 / self.entities_assessed, 1)

    @property
    def level(self) -> str:
        return type_gap_level(self.percentage)


@dataclass
class GapSummary:
    """Dashboard roll-up across entities"""
    entity_levels: dict[str, int] = field(default_factory=lambda: {"high": 0, "medium": 0, "low": 0})
    by_type: dict[AssessmentType, TypeGapShare] = field(default_factory=dict)


def population_impact_severity(
    lives_lost: int = 0,
    injured: int = 0,
    displaced: int = 0,
) -> Priority:
    """
    Bucket casualty counts

    lives lost > 100, injured > 500 or displaced > 5000 is CRITICAL;
    > 10 / > 100 / > 1000 is HIGH; any non-zero count is MEDIUM.
    """
    counts = (lives_lost or 0, injured or 0, displaced or 0)
    for severity, thresholds in POPULATION_IMPACT_THRESHOLDS:
        if thresholds.exceeded_by(*counts):
            return severity
    return Priority.LOW


def analyze_gaps(assessment_type: AssessmentType, values: Mapping[str, Any]) -> GapResult:
    """
    Evaluate every indicator of the type against the detail values

    Args:
        assessment_type: hazard category
        values: detail field values keyed by column name; missing keys count
            as False / 0

    Returns:
        GapResult; LOW with no fields when nothing is flagged
    """
    indicators = GAP_INDICATORS[assessment_type]
    flagged = [ind for ind in indicators if ind.is_gap(values.get(ind.field))]

    if assessment_type == AssessmentType.POPULATION:
        severity = population_impact_severity(
            lives_lost=values.get("number_lives_lost") or 0,
            injured=values.get("number_injured") or 0,
        )
        if not flagged:
            severity = Priority.LOW
        elif severity == Priority.LOW:
            # separated children alone still need action
            severity = Priority.MEDIUM
    else:
        severity = SEVERITY_BANDS[assessment_type].classify(len(flagged))

    return GapResult(
        assessment_type=assessment_type,
        has_gap=bool(flagged),
        gap_fields=tuple(ind.field for ind in flagged),
        severity=severity,
        recommendations=tuple(ind.recommendation for ind in flagged),
    )


def entity_gap_level(results: Iterable[GapResult]) -> str:
    """high if any category is CRITICAL or HIGH, medium if any is MEDIUM"""
    severities = {r.severity for r in results}
    if severities & {Priority.CRITICAL, Priority.HIGH}:
        return "high"
    if Priority.MEDIUM in severities:
        return "medium"
    return "low"


def type_gap_level(percentage: float) -> str:
    for level, minimum in TYPE_GAP_LEVELS:
        if percentage >= minimum:
            return level
    return "low"


def summarize_gaps(
    per_entity: Mapping[Hashable, Mapping[AssessmentType, GapResult]],
) -> GapSummary:
    """
    Roll entity results up for the dashboard

    Args:
        per_entity: entity key -> {assessment type: latest result}
    """
    summary = GapSummary()
    for results in per_entity.values():
        summary.entity_levels[entity_gap_level(results.values())] += 1
        for assessment_type, result in results.items():
            share = summary.by_type.setdefault(assessment_type, TypeGapShare())
            share.entities_assessed += 1
            if result.has_gap:
                share.entities_with_gap += 1
    return summary

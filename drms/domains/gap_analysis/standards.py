"""
Gap indicator standards

Fixed per-field rules used to flag deficiencies in rapid assessments, the
count bands that turn a number of gaps into a severity, and the casualty
thresholds used for population impact.

Field names match the detail columns of each assessment type.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from drms.core.enums import AssessmentType, Priority


@dataclass(frozen=True)
class GapIndicator:
    """
    One field rule.

    Boolean rules flag a gap when the field equals `gap_when`; numeric rules
    (with `above` set) flag a gap when the value exceeds `above`.

    Attributes:
        field: detail column name
        recommendation: action proposed when the gap is present
        gap_when: boolean value that signals a gap
        above: numeric threshold, None for boolean rules
    """
    field: str
    recommendation: str
    gap_when: bool = False
    above: Optional[int] = None

    def is_gap(self, value: Any) -> bool:
        if self.above is not None:
            return (value or 0) > self.above
        return bool(value) == self.gap_when


@dataclass(frozen=True)
class SeverityBands:
    """Minimum gap counts for each severity; below `medium` is LOW"""
    critical: int
    high: int
    medium: int = 1

    def classify(self, gap_count: int) -> Priority:
        if gap_count >= self.critical:
            return Priority.CRITICAL
        if gap_count >= self.high:
            return Priority.HIGH
        if gap_count >= self.medium:
            return Priority.MEDIUM
        return Priority.LOW


@dataclass(frozen=True)
class ImpactThresholds:
    """A severity level is reached when any count is strictly above its limit"""
    lives_lost: int
    injured: int
    displaced: int

    def exceeded_by(self, lives_lost: int, injured: int, displaced: int) -> bool:
        return (
            lives_lost > self.lives_lost
            or injured > self.injured
            or displaced > self.displaced
        )


GAP_INDICATORS: Mapping[AssessmentType, tuple[GapIndicator, ...]] = {
    AssessmentType.HEALTH: (
        GapIndicator("has_functional_clinic", "Deploy mobile clinics or establish temporary health facilities"),
        GapIndicator("has_emergency_services", "Establish emergency medical response team with proper equipment"),
        GapIndicator("has_trained_staff", "Deploy trained medical personnel and provide emergency training"),
        GapIndicator("has_medicine_supply", "Procure and distribute essential medicines and medical supplies"),
        GapIndicator("has_medical_supplies", "Secure medical equipment, diagnostic tools, and protective equipment"),
        GapIndicator("has_maternal_child_services", "Establish maternal and child health services with emergency obstetric care"),
    ),
    AssessmentType.FOOD: (
        GapIndicator("is_food_sufficient", "Request emergency food assistance and establish food distribution points"),
        GapIndicator("has_regular_meal_access", "Implement regular meal distribution programs and community kitchens"),
        GapIndicator("has_infant_nutrition", "Distribute therapeutic feeding and infant nutrition supplements"),
    ),
    AssessmentType.WASH: (
        GapIndicator("is_water_sufficient", "Deploy water trucking services and install water purification systems"),
        GapIndicator("has_clean_water_access", "Establish water treatment points and ensure water quality testing"),
        GapIndicator("are_latrines_sufficient", "Construct emergency sanitation facilities and improve existing latrines"),
        GapIndicator("has_handwashing_facilities", "Distribute soap and hand sanitizer, establish handwashing stations"),
        GapIndicator("has_open_defecation_concerns", "Implement safe defecation campaigns and monitor sanitation practices", gap_when=True),
    ),
    AssessmentType.SHELTER: (
        GapIndicator("are_shelters_sufficient", "Deploy emergency shelter kits and establish temporary housing"),
        GapIndicator("has_safe_structures", "Identify and retrofit safe buildings for emergency shelter use"),
        GapIndicator("are_overcrowded", "Decongest existing shelters and establish additional shelter sites", gap_when=True),
        GapIndicator("provide_weather_protection", "Provide weatherproofing materials and improve shelter insulation"),
    ),
    AssessmentType.SECURITY: (
        GapIndicator("is_safe_from_violence", "Establish security patrols and safe zones for vulnerable populations"),
        GapIndicator("gbv_cases_reported", "Deploy specialized GBV response teams and establish safe reporting mechanisms", gap_when=True),
        GapIndicator("has_security_presence", "Request security personnel deployment and establish local security committees"),
        GapIndicator("has_protection_reporting_mechanism", "Establish confidential protection reporting channels and community alert systems"),
        GapIndicator("vulnerable_groups_have_access", "Ensure priority access to services for women, children, elderly, and persons with disabilities"),
        GapIndicator("has_lighting", "Install lighting systems in high-risk areas and communal spaces"),
    ),
    AssessmentType.POPULATION: (
        GapIndicator("number_lives_lost", "Coordinate mass casualty management and dignified burials", above=0),
        GapIndicator("number_injured", "Deploy trauma care teams and arrange casualty evacuation", above=0),
        GapIndicator("separated_children", "Activate family tracing and reunification services", above=0),
    ),
}


# POPULATION severity comes from casualty counts, not the number of gaps
SEVERITY_BANDS: Mapping[AssessmentType, SeverityBands] = {
    AssessmentType.HEALTH: SeverityBands(critical=4, high=3),
    AssessmentType.FOOD: SeverityBands(critical=3, high=2),
    AssessmentType.WASH: SeverityBands(critical=4, high=3),
    AssessmentType.SHELTER: SeverityBands(critical=3, high=2),
    AssessmentType.SECURITY: SeverityBands(critical=4, high=2),
}


POPULATION_IMPACT_THRESHOLDS: tuple[tuple[Priority, ImpactThresholds], ...] = (
    (Priority.CRITICAL, ImpactThresholds(lives_lost=100, injured=500, displaced=5000)),
    (Priority.HIGH, ImpactThresholds(lives_lost=10, injured=100, displaced=1000)),
    (Priority.MEDIUM, ImpactThresholds(lives_lost=0, injured=0, displaced=0)),
)


# Share of entities with a gap (percent) needed for each level
TYPE_GAP_LEVELS: tuple[tuple[str, float], ...] = (
    ("high", 60.0),
    ("medium", 30.0),
)

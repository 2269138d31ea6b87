"""
Dashboard aggregation

Situation overview per incident and gap roll-ups built from verified
assessments, plus the donor view of the entities a donor supports. Read only.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import AssessmentType
from drms.core.exceptions import AuthorizationError, NotFoundError
from drms.domains.assessments.models import RapidAssessment, detail_values
from drms.domains.assessments.repository import RapidAssessmentRepository
from drms.domains.assessments.service import RapidAssessmentService
from drms.domains.donors.repository import CommitmentRepository, DonorRepository
from drms.domains.entities.models import Entity
from drms.domains.entities.repository import EntityAssignmentRepository, EntityRepository
from drms.domains.gap_analysis import (
    GapAnalysisResponse, GapResult, analyze_gaps, entity_gap_level,
    population_impact_severity, summarize_gaps,
)
from drms.domains.incidents.repository import IncidentRepository, PreliminaryAssessmentRepository
from drms.domains.incidents.schemas import IncidentResponse
from drms.domains.responses.repository import RapidResponseRepository

from .schemas import (
    ImpactTotals, IncidentSituation, SituationOverview, GapSummaryOverview, EntityGapAnalysis,
    EntityLatestAssessments,
)

logger = logging.getLogger(__name__)


def latest_per_entity_and_type(
    assessments: list[RapidAssessment],
) -> dict[UUID, dict[AssessmentType, RapidAssessment]]:
    """Keep the first assessment seen per (entity, type); input is newest first"""
    latest: dict[UUID, dict[AssessmentType, RapidAssessment]] = {}
    for assessment in assessments:
        by_type = latest.setdefault(assessment.entity_id, {})
        by_type.setdefault(AssessmentType(assessment.type), assessment)
    return latest


class DashboardService:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.incident_repo = IncidentRepository(session)
        self.preliminary_repo = PreliminaryAssessmentRepository(session)
        self.assessment_repo = RapidAssessmentRepository(session)
        self.response_repo = RapidResponseRepository(session)
        self.entity_repo = EntityRepository(session)
        self.assignment_repo = EntityAssignmentRepository(session)
        self.donor_repo = DonorRepository(session)
        self.commitment_repo = CommitmentRepository(session)

    async def situation_overview(self, incident_id: Optional[UUID] = None) -> SituationOverview:
        """
        One incident, or every incident that is not RESOLVED

        Casualty figures take, per metric, the larger of the verified
        population assessments and the preliminary reports; the two describe
        the same people and are not added.
        """
        incidents = await self.incident_repo.list_by_ids_or_active(incident_id)
        if incident_id and not incidents:
            raise NotFoundError("incident", incident_id)

        situations: list[IncidentSituation] = []
        totals = ImpactTotals()
        for incident in incidents:
            impact = await self._incident_impact(incident.id)
            situations.append(IncidentSituation(
                incident=IncidentResponse.model_validate(incident),
                impact=impact,
                impact_severity=population_impact_severity(impact.lives_lost, impact.injured, impact.displaced),
                assessment_counts=await self.assessment_repo.count_by_status(incident.id),
                response_counts=await self.response_repo.count_by_status(incident.id),
            ))
            for field in ImpactTotals.model_fields:
                setattr(totals, field, getattr(totals, field) + getattr(impact, field))

        return SituationOverview(
            incidents=situations,
            totals=totals,
            overall_severity=population_impact_severity(totals.lives_lost, totals.injured, totals.displaced),
            assessment_counts=await self.assessment_repo.count_by_status(incident_id),
            response_counts=await self.response_repo.count_by_status(incident_id),
        )

    async def gap_summary(self, incident_id: Optional[UUID] = None) -> GapSummaryOverview:
        """Latest verified assessment per entity and type, rolled up"""
        per_entity = await self._latest_gap_results(incident_id=incident_id)
        summary = summarize_gaps(per_entity)
        overview = GapSummaryOverview.from_summary(summary)
        overview.incident_id = incident_id
        overview.entities_assessed = len(per_entity)
        return overview

    async def entity_gap_analysis(self, entity_id: UUID) -> EntityGapAnalysis:
        entity = await self.entity_repo.get_by_id(entity_id)
        if not entity:
            raise NotFoundError("entity", entity_id)

        latest = latest_per_entity_and_type(await self.assessment_repo.list_verified(entity_id=entity_id))
        by_type = latest.get(entity_id, {})
        results = await self._analyze(by_type)
        return EntityGapAnalysis(
            entity_id=entity.id,
            entity_name=entity.name,
            entity_type=entity.type,
            gap_level=entity_gap_level(results.values()),
            gaps={
                assessment_type: GapAnalysisResponse.from_result(result, by_type[assessment_type].id)
                for assessment_type, result in results.items()
            },
            missing_types=[t for t in AssessmentType if t not in by_type],
        )

    async def donor_entity_gap_analysis(self, user_id: UUID, entity_id: UUID) -> EntityGapAnalysis:
        await self._get_supported_entity(user_id, entity_id)
        return await self.entity_gap_analysis(entity_id)

    async def donor_latest_assessments(self, user_id: UUID, entity_id: UUID) -> EntityLatestAssessments:
        """Latest verified assessment of each type, with detail and gap analysis"""
        entity = await self._get_supported_entity(user_id, entity_id)
        latest = latest_per_entity_and_type(await self.assessment_repo.list_verified(entity_id=entity_id))
        by_type = latest.get(entity_id, {})
        assessment_service = RapidAssessmentService(self.session)
        return EntityLatestAssessments(
            entity_id=entity.id,
            entity_name=entity.name,
            assessments={
                assessment_type: await assessment_service.build_response(assessment)
                for assessment_type, assessment in by_type.items()
            },
            missing_types=[t for t in AssessmentType if t not in by_type],
        )

    async def _get_supported_entity(self, user_id: UUID, entity_id: UUID) -> Entity:
        """
        A donor sees an entity it holds a commitment for that is not
        cancelled, or one its login is assigned to

        Raises:
            NotFoundError: entity or donor profile missing
            AuthorizationError: DN4033 entity not supported by the donor
        """
        entity = await self.entity_repo.get_by_id(entity_id)
        if not entity:
            raise NotFoundError("entity", entity_id)
        donor = await self.donor_repo.get_by_user_id(user_id)
        if not donor:
            raise NotFoundError("donor", user_id)
        if entity_id not in await self.commitment_repo.supported_entities(donor.id):
            if not await self.assignment_repo.is_assigned(user_id, entity_id):
                raise AuthorizationError("DN4033", "Entity is not supported by this donor")
        return entity

    async def _incident_impact(self, incident_id: UUID) -> ImpactTotals:
        preliminary = await self.preliminary_repo.impact_totals(incident_id)

        verified = await self.assessment_repo.list_verified(incident_id=incident_id)
        population = [
            by_type[AssessmentType.POPULATION]
            for by_type in latest_per_entity_and_type(verified).values()
            if AssessmentType.POPULATION in by_type
        ]
        details = await self.assessment_repo.get_details(
            AssessmentType.POPULATION, [a.id for a in population]
        )
        lives_lost = sum(d.number_lives_lost or 0 for d in details.values())
        injured = sum(d.number_injured or 0 for d in details.values())
        affected = sum(d.total_population or 0 for d in details.values())

        return ImpactTotals(
            lives_lost=max(lives_lost, preliminary["lives_lost"]),
            injured=max(injured, preliminary["injured"]),
            displaced=preliminary["displaced"],
            affected_population=affected,
            preliminary_reports=preliminary["reports"],
            population_assessments=len(details),
        )

    async def _latest_gap_results(
        self,
        incident_id: Optional[UUID] = None,
    ) -> dict[UUID, dict[AssessmentType, GapResult]]:
        latest = latest_per_entity_and_type(await self.assessment_repo.list_verified(incident_id=incident_id))
        return {entity_id: await self._analyze(by_type) for entity_id, by_type in latest.items()}

    async def _analyze(
        self,
        by_type: dict[AssessmentType, RapidAssessment],
    ) -> dict[AssessmentType, GapResult]:
        results: dict[AssessmentType, GapResult] = {}
        for assessment_type, assessment in by_type.items():
            details = await self.assessment_repo.get_details(assessment_type, [assessment.id])
            detail = details.get(assessment.id)
            if detail is None:
                logger.warning(f"Assessment {assessment.id} has no {assessment_type.value} detail")
                continue
            results[assessment_type] = analyze_gaps(assessment_type, detail_values(detail))
        return results

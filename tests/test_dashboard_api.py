"""API tests for the situation overview and gap roll-ups."""
from __future__ import annotations

from uuid import uuid4

from drms.core.enums import RoleName

from conftest import API


def _population(incident, lives_lost: int, injured: int, total: int = 2000) -> dict:
    return {
        "type": "POPULATION",
        "incident_id": str(incident.id),
        "health_data": None,
        "population_data": {
            "total_population": total,
            "number_lives_lost": lives_lost,
            "number_injured": injured,
        },
    }


def _shelter(**values) -> dict:
    data = {
        "are_shelters_sufficient": True,
        "has_safe_structures": True,
        "are_overcrowded": False,
        "provide_weather_protection": True,
    }
    data.update(values)
    return {"type": "SHELTER", "health_data": None, "shelter_data": data}


async def test_situation_overview(client, make_user, make_entity, make_incident, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    camp = await make_entity(assessor)
    ward = await make_entity(assessor)
    incident = await make_incident()
    await make_assessment(assessor, camp, verify_as=coordinator, **_population(incident, 5, 150))
    # unverified figures stay out of the totals
    await make_assessment(assessor, ward, **_population(incident, 90, 0))
    resp = await client.post(
        f"{API}/incidents/preliminary-assessments",
        json={
            "reporting_lga": "Jere",
            "reporting_ward": "Gongulong",
            "number_lives_lost": 12,
            "number_injured": 20,
            "number_displaced": 800,
            "reporting_agent": "Field team 1",
            "incident_id": str(incident.id),
        },
        headers=assessor.headers,
    )
    assert resp.status_code == 201

    resp = await client.get(
        f"{API}/dashboard/situation",
        params={"incident_id": str(incident.id)},
        headers=coordinator.headers,
    )

    assert resp.status_code == 200
    overview = resp.json()["data"]
    assert overview["totals"] == {
        "lives_lost": 12,
        "injured": 150,
        "displaced": 800,
        "affected_population": 2000,
        "preliminary_reports": 1,
        "population_assessments": 1,
    }
    assert overview["overall_severity"] == "HIGH"
    situation = overview["incidents"][0]
    assert situation["incident"]["id"] == str(incident.id)
    assert situation["impact_severity"] == "HIGH"
    assert situation["assessment_counts"]["VERIFIED"] == 1
    assert situation["assessment_counts"]["SUBMITTED"] == 1
    assert situation["response_counts"]["SUBMITTED"] == 0


async def test_situation_lists_open_incidents(client, make_user, make_incident) -> None:
    coordinator = await make_user(RoleName.COORDINATOR)
    open_incident = await make_incident("FLOOD")
    closed = await make_incident("FIRE")
    await client.put(f"{API}/incidents/{closed.id}/status", json={"status": "RESOLVED"}, headers=coordinator.headers)

    resp = await client.get(f"{API}/dashboard/situation", headers=coordinator.headers)

    overview = resp.json()["data"]
    assert [s["incident"]["id"] for s in overview["incidents"]] == [str(open_incident.id)]
    assert overview["overall_severity"] == "LOW"


async def test_situation_unknown_incident(client, make_user) -> None:
    donor = await make_user(RoleName.DONOR)

    resp = await client.get(f"{API}/dashboard/situation", params={"incident_id": str(uuid4())}, headers=donor.headers)

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "INCIDENT_NOT_FOUND"


async def test_dashboard_role_gate(client, make_user) -> None:
    assessor = await make_user(RoleName.ASSESSOR)

    resp = await client.get(f"{API}/dashboard/gaps", headers=assessor.headers)

    assert resp.status_code == 403


async def test_gap_summary(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    responder = await make_user(RoleName.RESPONDER)
    clinic_gap = await make_entity(assessor)
    shelter_gap = await make_entity(assessor)
    unreviewed = await make_entity(assessor)

    medicine_short = {
        "has_functional_clinic": True,
        "has_emergency_services": True,
        "has_trained_staff": True,
        "has_medicine_supply": False,
        "has_medical_supplies": True,
        "has_maternal_child_services": True,
    }
    await make_assessment(assessor, clinic_gap, verify_as=coordinator, health_data=medicine_short)
    await make_assessment(assessor, shelter_gap, verify_as=coordinator)
    await make_assessment(
        assessor, shelter_gap, verify_as=coordinator,
        **_shelter(are_shelters_sufficient=False, are_overcrowded=True),
    )
    await make_assessment(assessor, unreviewed, health_data=medicine_short)

    resp = await client.get(f"{API}/dashboard/gaps", headers=responder.headers)

    assert resp.status_code == 200
    summary = resp.json()["data"]
    assert summary["entities_assessed"] == 2
    assert summary["entity_levels"] == {"high": 1, "medium": 1, "low": 0}
    by_type = {row["assessment_type"]: row for row in summary["by_type"]}
    assert by_type["HEALTH"]["entities_assessed"] == 2
    assert by_type["HEALTH"]["entities_with_gap"] == 1
    assert by_type["HEALTH"]["level"] == "medium"
    assert by_type["SHELTER"]["percentage"] == 100.0
    assert by_type["SHELTER"]["level"] == "high"


async def test_entity_gap_analysis_uses_latest_verified(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor, name="Stadium Camp")
    await make_assessment(assessor, entity, verify_as=coordinator, **_shelter(are_overcrowded=True))
    latest = await make_assessment(assessor, entity, verify_as=coordinator, **_shelter())
    await make_assessment(assessor, entity, **_shelter(are_shelters_sufficient=False))

    resp = await client.get(f"{API}/dashboard/entities/{entity.id}/gaps", headers=coordinator.headers)

    assert resp.status_code == 200
    analysis = resp.json()["data"]
    assert analysis["entity_name"] == "Stadium Camp"
    assert analysis["gap_level"] == "low"
    assert list(analysis["gaps"]) == ["SHELTER"]
    assert analysis["gaps"]["SHELTER"]["assessment_id"] == latest["id"]
    assert analysis["gaps"]["SHELTER"]["has_gap"] is False
    assert "SHELTER" not in analysis["missing_types"]
    assert "HEALTH" in analysis["missing_types"]


async def test_entity_gap_analysis_unknown_entity(client, make_user) -> None:
    coordinator = await make_user(RoleName.COORDINATOR)

    resp = await client.get(f"{API}/dashboard/entities/{uuid4()}/gaps", headers=coordinator.headers)

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "ENTITY_NOT_FOUND"

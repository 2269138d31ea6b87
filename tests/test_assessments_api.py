"""API tests for rapid assessments: creation, editing, submission and gaps."""
from __future__ import annotations

from drms.core.enums import RoleName

from conftest import API, health_payload


async def test_create_draft_with_gap_analysis(client, make_user, make_entity, make_incident) -> None:
    assessor = await make_user(RoleName.ASSESSOR, name="Amina Bello")
    entity = await make_entity(assessor)
    incident = await make_incident()

    payload = health_payload(entity.id, incident_id=str(incident.id))
    payload["health_data"]["has_medicine_supply"] = False

    resp = await client.post(f"{API}/assessments", json=payload, headers=assessor.headers)

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["verification_status"] == "DRAFT"
    assert data["assessor_name"] == "Amina Bello"
    assert data["location"] == "Maiduguri"
    assert data["version_number"] == 1
    assert data["detail"]["number_health_facilities"] == 2
    assert data["gap_analysis"]["gap_fields"] == ["has_medicine_supply"]
    assert data["gap_analysis"]["severity"] == "MEDIUM"


async def test_detail_must_match_type(client, make_user, make_entity) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    entity = await make_entity(assessor)
    payload = health_payload(entity.id)
    payload["type"] = "FOOD"

    resp = await client.post(f"{API}/assessments", json=payload, headers=assessor.headers)

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_population_totals_are_validated(client, make_user, make_entity) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    entity = await make_entity(assessor)
    payload = {
        "type": "POPULATION",
        "entity_id": str(entity.id),
        "population_data": {"total_population": 10, "number_lives_lost": 8, "number_injured": 5},
    }

    resp = await client.post(f"{API}/assessments", json=payload, headers=assessor.headers)

    assert resp.status_code == 400


async def test_assessor_must_be_assigned(client, make_user, make_entity) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    entity = await make_entity()

    resp = await client.post(f"{API}/assessments", json=health_payload(entity.id), headers=assessor.headers)

    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "EN4031"


async def test_inactive_entity_is_refused(client, make_user, make_entity) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    entity = await make_entity(assessor, is_active=False)

    resp = await client.post(f"{API}/assessments", json=health_payload(entity.id), headers=assessor.headers)

    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "EN4092"


async def test_edit_submit_and_lock(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    entity = await make_entity(assessor)
    draft = await make_assessment(assessor, entity, submit=False)
    url = f"{API}/assessments/{draft['id']}"

    resp = await client.put(url, json={"priority": "HIGH", "health_data": {"has_functional_clinic": True}}, headers=assessor.headers)
    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert updated["priority"] == "HIGH"
    assert updated["version_number"] == 2
    assert updated["detail"]["has_trained_staff"] is False

    resp = await client.put(url, json={"food_data": {}}, headers=assessor.headers)
    assert resp.status_code == 400

    resp = await client.post(f"{url}/submit", headers=assessor.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["verification_status"] == "SUBMITTED"
    assert resp.json()["data"]["submitted_at"] is not None

    resp = await client.put(url, json={"priority": "LOW"}, headers=assessor.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "AS4091"

    resp = await client.post(f"{url}/submit", headers=assessor.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "VF4091"


async def test_only_owner_edits(client, make_user, make_entity, make_assessment) -> None:
    owner = await make_user(RoleName.ASSESSOR)
    other = await make_user(RoleName.ASSESSOR)
    entity = await make_entity(owner, other)
    draft = await make_assessment(owner, entity, submit=False)

    resp = await client.put(f"{API}/assessments/{draft['id']}", json={"priority": "LOW"}, headers=other.headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "AS4031"

    resp = await client.get(f"{API}/assessments/{draft['id']}", headers=other.headers)
    assert resp.status_code == 403


async def test_reviewers_see_all_assessors_see_own(client, make_user, make_entity, make_assessment) -> None:
    first = await make_user(RoleName.ASSESSOR)
    second = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(first, second)
    await make_assessment(first, entity)
    await make_assessment(second, entity)

    resp = await client.get(f"{API}/assessments", headers=first.headers)
    assert resp.json()["data"]["total"] == 1

    resp = await client.get(f"{API}/assessments", params={"entity_id": str(entity.id)}, headers=coordinator.headers)
    assert resp.json()["data"]["total"] == 2

    resp = await client.get(
        f"{API}/assessments",
        params={"verification_status": "DRAFT"},
        headers=coordinator.headers,
    )
    assert resp.json()["data"]["total"] == 0


async def test_delete_only_drafts(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    entity = await make_entity(assessor)
    draft = await make_assessment(assessor, entity, submit=False)
    submitted = await make_assessment(assessor, entity, submit=True)

    resp = await client.delete(f"{API}/assessments/{submitted['id']}", headers=assessor.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "AS4092"

    resp = await client.delete(f"{API}/assessments/{draft['id']}", headers=assessor.headers)
    assert resp.status_code == 200

    resp = await client.get(f"{API}/assessments/{draft['id']}", headers=assessor.headers)
    assert resp.status_code == 404


async def test_rejected_assessment_is_corrected_and_resubmitted(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor)
    submitted = await make_assessment(assessor, entity)
    url = f"{API}/assessments/{submitted['id']}"

    resp = await client.post(
        f"{API}/verification/assessments/{submitted['id']}/reject",
        json={"reason": "INCOMPLETE_DATA", "feedback": "Facility count is missing"},
        headers=coordinator.headers,
    )
    assert resp.status_code == 200

    resp = await client.put(url, json={"priority": "HIGH"}, headers=assessor.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["verification_status"] == "REJECTED"
    assert resp.json()["data"]["rejection_feedback"] == "Facility count is missing"

    resp = await client.post(f"{url}/submit", headers=assessor.headers)
    data = resp.json()["data"]
    assert data["verification_status"] == "SUBMITTED"
    assert data["rejection_reason"] is None
    assert data["rejection_feedback"] is None


async def test_gap_analysis_endpoint(client, make_user, make_entity) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    entity = await make_entity(assessor)
    payload = {
        "type": "SHELTER",
        "entity_id": str(entity.id),
        "shelter_data": {
            "are_shelters_sufficient": False,
            "has_safe_structures": True,
            "are_overcrowded": True,
            "provide_weather_protection": True,
        },
    }
    created = (await client.post(f"{API}/assessments", json=payload, headers=assessor.headers)).json()["data"]

    resp = await client.get(f"{API}/assessments/{created['id']}/gap-analysis", headers=assessor.headers)

    assert resp.status_code == 200
    gaps = resp.json()["data"]
    assert gaps["assessment_type"] == "SHELTER"
    assert gaps["assessment_id"] == created["id"]
    assert sorted(gaps["gap_fields"]) == ["are_overcrowded", "are_shelters_sufficient"]
    assert gaps["severity"] == "HIGH"
    assert len(gaps["recommendations"]) == 2


async def test_update_refuses_explicit_nulls(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    entity = await make_entity(assessor)
    draft = await make_assessment(assessor, entity, submit=False, media_attachments=["photo.jpg"])
    url = f"{API}/assessments/{draft['id']}"

    for field in ("priority", "media_attachments", "assessment_date"):
        resp = await client.put(url, json={field: None}, headers=assessor.headers)
        assert resp.status_code == 400, field
        assert resp.json()["error"]["details"][0]["field"] == f"body.{field}"

    resp = await client.get(url, headers=assessor.headers)
    data = resp.json()["data"]
    assert data["priority"] == "MEDIUM"
    assert data["media_attachments"] == ["photo.jpg"]
    assert data["version_number"] == 1

    resp = await client.put(url, json={"location": None}, headers=assessor.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["location"] is None

"""API tests for donor registration, commitments and their use by responders."""
from __future__ import annotations

from uuid import uuid4

from drms.core.enums import RoleName

from conftest import API


async def _register_donor(client, handle: str = "redcross") -> dict[str, str]:
    body = {
        "email": f"{handle}@example.org",
        "username": handle,
        "password": "Passw0rd123",
        "name": "Grace Adeyemi",
        "donor_name": f"{handle.title()} Relief",
        "type": "NGO",
        "organization": "Relief Partners",
    }
    resp = await client.post(f"{API}/donors/register", json=body)
    assert resp.status_code == 201, resp.text
    login = await client.post(f"{API}/auth/login", json={"username": handle, "password": "Passw0rd123"})
    return {"Authorization": f"Bearer {login.json()['data']['access_token']}"}


async def _commit(client, headers, entity, incident, *quantities, **extra):
    body = {
        "entity_id": str(entity.id),
        "incident_id": str(incident.id),
        "items": [{"name": f"item-{i}", "unit": "bag", "quantity": q} for i, q in enumerate(quantities)],
        **extra,
    }
    return await client.post(f"{API}/commitments", json=body, headers=headers)


async def test_register_donor(client) -> None:
    headers = await _register_donor(client)

    resp = await client.get(f"{API}/donors/me", headers=headers)

    assert resp.status_code == 200
    profile = resp.json()["data"]
    assert profile["name"] == "Redcross Relief"
    assert profile["type"] == "NGO"
    assert profile["contact_email"] == "redcross@example.org"
    assert profile["is_active"] is True

    resp = await client.put(f"{API}/donors/me", json={"contact_phone": "+234 803 000 0000"}, headers=headers)
    assert resp.json()["data"]["contact_phone"] == "+234 803 000 0000"


async def test_register_rejects_duplicates_and_bad_email(client) -> None:
    await _register_donor(client)
    body = {
        "email": "other@example.org",
        "username": "redcross",
        "password": "Passw0rd123",
        "name": "Someone",
        "donor_name": "Other",
    }

    resp = await client.post(f"{API}/donors/register", json=body)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "US4091"

    resp = await client.post(f"{API}/donors/register", json={**body, "username": "fresh", "email": "not-an-email"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_create_commitment(client, make_user, make_entity, make_incident) -> None:
    headers = await _register_donor(client)
    entity = await make_entity()
    incident = await make_incident()

    resp = await _commit(client, headers, entity, incident, 30, 20, notes="Rice and beans")

    assert resp.status_code == 201
    commitment = resp.json()["data"]
    assert commitment["status"] == "PLANNED"
    assert commitment["total_committed_quantity"] == 50
    assert commitment["delivered_quantity"] == 0
    assert commitment["available_quantity"] == 50

    resp = await client.get(f"{API}/commitments/mine", headers=headers)
    assert [c["id"] for c in resp.json()["data"]["items"]] == [commitment["id"]]


async def test_commitment_requires_active_entity_and_known_incident(client, make_entity, make_incident) -> None:
    headers = await _register_donor(client)
    closed = await make_entity(is_active=False)
    entity = await make_entity()
    incident = await make_incident()

    resp = await _commit(client, headers, closed, incident, 10)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DN4091"

    body = {"entity_id": str(entity.id), "incident_id": str(uuid4()), "items": [{"name": "rice", "unit": "bag", "quantity": 1}]}
    resp = await client.post(f"{API}/commitments", json=body, headers=headers)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "INCIDENT_NOT_FOUND"


async def test_commitment_requires_donor_role(client, make_user, make_entity, make_incident) -> None:
    responder = await make_user(RoleName.RESPONDER)

    resp = await _commit(client, responder.headers, await make_entity(), await make_incident(), 5)

    assert resp.status_code == 403


async def test_available_commitments_for_assigned_responder(client, make_user, make_entity, make_incident) -> None:
    headers = await _register_donor(client)
    responder = await make_user(RoleName.RESPONDER)
    assigned = await make_entity(responder)
    elsewhere = await make_entity()
    incident = await make_incident()
    mine = (await _commit(client, headers, assigned, incident, 10)).json()["data"]
    await _commit(client, headers, elsewhere, incident, 10)
    cancelled = (await _commit(client, headers, assigned, incident, 10)).json()["data"]
    await client.delete(f"{API}/commitments/{cancelled['id']}", headers=headers)

    resp = await client.get(f"{API}/commitments/available", headers=responder.headers)

    assert [c["id"] for c in resp.json()["data"]["items"]] == [mine["id"]]


async def test_plan_from_commitment_draws_quantity(client, make_user, make_entity, make_incident, make_assessment) -> None:
    headers = await _register_donor(client)
    assessor = await make_user(RoleName.ASSESSOR)
    responder = await make_user(RoleName.RESPONDER)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor, responder)
    incident = await make_incident()
    commitment = (await _commit(client, headers, entity, incident, 100)).json()["data"]
    first = await make_assessment(assessor, entity, verify_as=coordinator)
    second = await make_assessment(assessor, entity, verify_as=coordinator)
    third = await make_assessment(assessor, entity, verify_as=coordinator)

    def body(assessment, quantity):
        return {
            "commitment_id": commitment["id"],
            "assessment_id": assessment["id"],
            "items": [{"name": "rice", "unit": "bag", "quantity": quantity}],
        }

    resp = await client.post(f"{API}/responses/from-commitment", json=body(first, 60), headers=responder.headers)
    assert resp.status_code == 201
    response = resp.json()["data"]
    assert response["type"] == "LOGISTICS"
    assert response["commitment_id"] == commitment["id"]
    assert response["donor_id"] == commitment["donor_id"]

    resp = await client.get(f"{API}/commitments/{commitment['id']}", headers=responder.headers)
    assert resp.json()["data"]["status"] == "PARTIAL"
    assert resp.json()["data"]["available_quantity"] == 40

    resp = await client.post(f"{API}/responses/from-commitment", json=body(second, 41), headers=responder.headers)
    assert resp.status_code == 400
    assert "exceeds available" in resp.json()["error"]["message"]

    resp = await client.post(f"{API}/responses/from-commitment", json=body(second, 40), headers=responder.headers)
    assert resp.status_code == 201

    resp = await client.get(f"{API}/commitments/{commitment['id']}", headers=headers)
    assert resp.json()["data"]["status"] == "COMPLETE"

    resp = await client.post(f"{API}/responses/from-commitment", json=body(third, 1), headers=responder.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DN4092"


async def test_cancel_only_planned_commitments(client, make_entity, make_incident) -> None:
    headers = await _register_donor(client)
    other = await _register_donor(client, "unicef")
    entity = await make_entity()
    incident = await make_incident()
    commitment = (await _commit(client, headers, entity, incident, 10)).json()["data"]
    url = f"{API}/commitments/{commitment['id']}"

    resp = await client.delete(url, headers=other)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "DN4031"

    resp = await client.get(url, headers=other)
    assert resp.status_code == 403

    resp = await client.patch(f"{url}/status", json={"status": "PARTIAL"}, headers=headers)
    assert resp.json()["data"]["status"] == "PARTIAL"

    resp = await client.delete(url, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DN4093"


async def test_status_update(client, make_user, make_entity, make_incident) -> None:
    headers = await _register_donor(client)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity()
    incident = await make_incident()
    commitment = (await _commit(client, headers, entity, incident, 25)).json()["data"]
    url = f"{API}/commitments/{commitment['id']}/status"

    resp = await client.patch(url, json={"status": "COMPLETE", "notes": "Handed over"}, headers=coordinator.headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["delivered_quantity"] == 25
    assert data["available_quantity"] == 0
    assert data["notes"] == "Handed over"

    resp = await client.patch(url, json={"status": "PLANNED"}, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DN4092"
    assert resp.json()["error"]["details"] == {"current_status": "COMPLETE", "target_status": "PLANNED"}


async def test_donor_stats(client, make_user, make_entity, make_incident) -> None:
    headers = await _register_donor(client)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity()
    incident = await make_incident()
    complete = (await _commit(client, headers, entity, incident, 40)).json()["data"]
    await _commit(client, headers, entity, incident, 60)
    cancelled = (await _commit(client, headers, entity, incident, 500)).json()["data"]
    await client.patch(f"{API}/commitments/{complete['id']}/status", json={"status": "COMPLETE"}, headers=headers)
    await client.delete(f"{API}/commitments/{cancelled['id']}", headers=headers)

    resp = await client.get(f"{API}/donors/me/stats", headers=headers)

    stats = resp.json()["data"]
    assert stats["total_commitments"] == 3
    assert stats["status_breakdown"] == {"planned": 1, "partial": 0, "complete": 1, "cancelled": 1}
    assert stats["total_committed_quantity"] == 100
    assert stats["total_delivered_quantity"] == 40
    assert stats["utilization_rate"] == 40.0

    resp = await client.get(f"{API}/donors/{complete['donor_id']}/stats", headers=coordinator.headers)
    assert resp.json()["data"]["total_commitments"] == 3


async def test_coordinator_lists_donors(client, make_user) -> None:
    await _register_donor(client, "redcross")
    await _register_donor(client, "unicef")
    coordinator = await make_user(RoleName.COORDINATOR)
    donor_headers = await _register_donor(client, "oxfam")

    resp = await client.get(f"{API}/donors", params={"type": "NGO"}, headers=coordinator.headers)
    assert resp.json()["data"]["total"] == 3

    resp = await client.get(f"{API}/donors", headers=donor_headers)
    assert resp.status_code == 403


async def test_coordinator_reassigns_commitment(client, make_user, make_entity, make_incident) -> None:
    coordinator = await make_user(RoleName.COORDINATOR)
    origin = await make_entity()
    target = await make_entity(coordinator)
    closed = await make_entity(coordinator, is_active=False)
    elsewhere = await make_entity()
    incident = await make_incident()
    headers = await _register_donor(client)
    commitment = (await _commit(client, headers, origin, incident, 30)).json()["data"]
    url = f"{API}/commitments/{commitment['id']}/assign"

    resp = await client.post(url, json={"entity_id": str(target.id)}, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "AU4003"

    resp = await client.post(url, json={"entity_id": str(elsewhere.id)}, headers=coordinator.headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "DN4032"

    resp = await client.post(url, json={"entity_id": str(closed.id)}, headers=coordinator.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DN4091"

    resp = await client.post(url, json={"entity_id": str(origin.id)}, headers=coordinator.headers)
    assert resp.json()["error"]["code"] == "DN4094"

    resp = await client.post(
        url,
        json={"entity_id": str(target.id), "reason": "Camp relocated"},
        headers=coordinator.headers,
    )
    assert resp.status_code == 200
    moved = resp.json()["data"]
    assert moved["entity_id"] == str(target.id)
    assert moved["available_quantity"] == 30

    resp = await client.get(f"{API}/commitments/{commitment['id']}/assignments", headers=coordinator.headers)
    history = resp.json()["data"]
    assert len(history) == 1
    assert history[0]["from_entity_id"] == str(origin.id)
    assert history[0]["to_entity_id"] == str(target.id)
    assert history[0]["reason"] == "Camp relocated"
    assert history[0]["assigned_by"] == str(coordinator.id)


async def test_reassign_refuses_closed_commitments(client, make_user, make_entity, make_incident) -> None:
    coordinator = await make_user(RoleName.COORDINATOR)
    origin = await make_entity()
    target = await make_entity(coordinator)
    incident = await make_incident()
    headers = await _register_donor(client)
    commitment = (await _commit(client, headers, origin, incident, 30)).json()["data"]
    await client.delete(f"{API}/commitments/{commitment['id']}", headers=headers)

    resp = await client.post(
        f"{API}/commitments/{commitment['id']}/assign",
        json={"entity_id": str(target.id)},
        headers=coordinator.headers,
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DN4092"

    resp = await client.post(
        f"{API}/commitments/{uuid4()}/assign",
        json={"entity_id": str(target.id)},
        headers=coordinator.headers,
    )
    assert resp.status_code == 404


async def test_donor_sees_supported_entity_insights(
    client, make_user, make_entity, make_incident, make_assessment,
) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    supported = await make_entity(assessor, name="Dalori Camp")
    unsupported = await make_entity(assessor)
    incident = await make_incident()
    medicine_short = {
        "has_functional_clinic": True,
        "has_emergency_services": True,
        "has_trained_staff": True,
        "has_medicine_supply": False,
        "has_medical_supplies": True,
        "has_maternal_child_services": True,
    }
    assessment = await make_assessment(assessor, supported, verify_as=coordinator, health_data=medicine_short)
    await make_assessment(assessor, unsupported, verify_as=coordinator)
    headers = await _register_donor(client)
    gaps_url = f"{API}/donors/entities/{supported.id}/gap-analysis"

    resp = await client.get(gaps_url, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "DN4033"

    await _commit(client, headers, supported, incident, 25)

    resp = await client.get(f"{API}/donors/me/entities", headers=headers)
    assert resp.json()["data"] == [{
        "entity_id": str(supported.id),
        "entity_name": "Dalori Camp",
        "entity_type": "CAMP",
        "location": "Maiduguri",
        "active_commitments": 1,
    }]

    resp = await client.get(gaps_url, headers=headers)
    assert resp.status_code == 200
    analysis = resp.json()["data"]
    assert analysis["gap_level"] == "medium"
    assert analysis["gaps"]["HEALTH"]["gap_fields"] == ["has_medicine_supply"]
    assert "FOOD" in analysis["missing_types"]

    resp = await client.get(f"{API}/donors/entities/{supported.id}/assessments/latest", headers=headers)
    assert resp.status_code == 200
    latest = resp.json()["data"]
    assert latest["entity_name"] == "Dalori Camp"
    assert list(latest["assessments"]) == ["HEALTH"]
    health = latest["assessments"]["HEALTH"]
    assert health["id"] == assessment["id"]
    assert health["detail"]["has_medicine_supply"] is False
    assert health["gap_analysis"]["has_gap"] is True

    resp = await client.get(f"{API}/donors/entities/{unsupported.id}/assessments/latest", headers=headers)
    assert resp.status_code == 403

    resp = await client.get(f"{API}/donors/entities/{uuid4()}/gap-analysis", headers=headers)
    assert resp.status_code == 404

    resp = await client.get(gaps_url, headers=coordinator.headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "AU4003"


async def test_leaderboard_ranks_by_delivery(client, make_user, make_entity, make_incident) -> None:
    viewer = await make_user(RoleName.RESPONDER)
    entity = await make_entity()
    incident = await make_incident()
    alpha = await _register_donor(client, "alpha")
    bravo = await _register_donor(client, "bravo")

    done = (await _commit(client, alpha, entity, incident, 100)).json()["data"]
    await client.patch(f"{API}/commitments/{done['id']}/status", json={"status": "COMPLETE"}, headers=alpha)
    await _commit(client, bravo, entity, incident, 60)
    dropped = (await _commit(client, bravo, entity, incident, 40)).json()["data"]
    await client.delete(f"{API}/commitments/{dropped['id']}", headers=bravo)

    resp = await client.get(f"{API}/donors/leaderboard", params={"timeframe": "all"}, headers=viewer.headers)

    assert resp.status_code == 200
    board = resp.json()["data"]
    assert board["sort_by"] == "overall"
    first, second = board["entries"]
    assert (first["rank"], first["donor_name"]) == (1, "Alpha Relief")
    assert first["delivery_rate"] == 100.0
    assert first["completion_rate"] == 100.0
    assert first["overall_score"] == 100.0
    assert (second["rank"], second["donor_name"]) == (2, "Bravo Relief")
    assert second["total_commitments"] == 2
    assert second["total_committed_quantity"] == 60
    assert second["overall_score"] == 0.0

    resp = await client.get(f"{API}/donors/leaderboard", params={"limit": 1, "sort_by": "volume"}, headers=viewer.headers)
    assert [e["donor_name"] for e in resp.json()["data"]["entries"]] == ["Alpha Relief"]

    resp = await client.get(f"{API}/donors/leaderboard", params={"timeframe": "2d"}, headers=viewer.headers)
    assert resp.status_code == 400

    client.cookies.clear()
    resp = await client.get(f"{API}/donors/leaderboard")
    assert resp.status_code == 401

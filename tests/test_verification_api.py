"""API tests for coordinator review, auto-approval configuration and metrics."""
from __future__ import annotations

from uuid import uuid4

from drms.core.enums import RoleName

from conftest import API


async def _enable_auto_approval(client, coordinator, *entities, **config) -> dict:
    body = {
        "entity_ids": [str(e.id) for e in entities],
        "enabled": True,
        "scope": config.pop("scope", "both"),
        "conditions": config,
    }
    resp = await client.put(f"{API}/verification/auto-approval", json=body, headers=coordinator.headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


async def test_review_requires_coordinator(client, make_user) -> None:
    assessor = await make_user(RoleName.ASSESSOR)

    resp = await client.get(f"{API}/verification/queue/assessments", headers=assessor.headers)

    assert resp.status_code == 403


async def test_queue_orders_by_priority_then_submission(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor)
    low = await make_assessment(assessor, entity, priority="LOW")
    critical = await make_assessment(assessor, entity, priority="CRITICAL")
    medium_first = await make_assessment(assessor, entity, priority="MEDIUM")
    medium_second = await make_assessment(assessor, entity, priority="MEDIUM")
    await make_assessment(assessor, entity, submit=False, priority="CRITICAL")

    resp = await client.get(f"{API}/verification/queue/assessments", headers=coordinator.headers)

    assert resp.status_code == 200
    ids = [item["id"] for item in resp.json()["data"]["items"]]
    assert ids == [critical["id"], medium_first["id"], medium_second["id"], low["id"]]

    resp = await client.get(
        f"{API}/verification/queue/assessments",
        params={"priority": "MEDIUM"},
        headers=coordinator.headers,
    )
    assert resp.json()["data"]["total"] == 2


async def test_verify_records_reviewer(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor)
    submitted = await make_assessment(assessor, entity)
    url = f"{API}/verification/assessments/{submitted['id']}/verify"

    resp = await client.post(url, json={"notes": "Matches field photos"}, headers=coordinator.headers)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["verification_status"] == "VERIFIED"
    assert data["verified_by"] == str(coordinator.id)
    assert data["verified_at"] is not None
    assert data["verification_notes"] == "Matches field photos"

    resp = await client.post(url, json={}, headers=coordinator.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "VF4091"

    resp = await client.get(
        f"{API}/verification/audit-logs",
        params={"action": "VERIFY_ASSESSMENT"},
        headers=coordinator.headers,
    )
    logs = resp.json()["data"]["items"]
    assert [log["resource_id"] for log in logs] == [submitted["id"]]


async def test_draft_cannot_be_verified(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor)
    draft = await make_assessment(assessor, entity, submit=False)

    resp = await client.post(
        f"{API}/verification/assessments/{draft['id']}/verify",
        json={},
        headers=coordinator.headers,
    )

    assert resp.status_code == 409
    assert resp.json()["error"]["details"]["current_status"] == "DRAFT"


async def test_reject_requires_reason_and_feedback(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor)
    submitted = await make_assessment(assessor, entity)
    url = f"{API}/verification/assessments/{submitted['id']}/reject"

    resp = await client.post(url, json={"reason": "OTHER", "feedback": ""}, headers=coordinator.headers)
    assert resp.status_code == 400

    resp = await client.post(url, json={"reason": "NOT_A_REASON", "feedback": "x"}, headers=coordinator.headers)
    assert resp.status_code == 400

    resp = await client.post(url, json={"reason": "OTHER", "feedback": "   "}, headers=coordinator.headers)
    assert resp.status_code == 400

    resp = await client.post(
        url,
        json={"reason": "LOCATION_MISMATCH", "feedback": "GPS is 40km from the camp"},
        headers=coordinator.headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["verification_status"] == "REJECTED"
    assert data["rejection_reason"] == "LOCATION_MISMATCH"
    assert data["verified_by"] == str(coordinator.id)

    resp = await client.get(
        f"{API}/verification/audit-logs",
        params={"resource_id": submitted["id"], "action": "REJECT_ASSESSMENT"},
        headers=coordinator.headers,
    )
    log = resp.json()["data"]["items"][0]
    assert log["new_values"]["rejection_feedback"] == "GPS is 40km from the camp"


async def test_auto_approval_on_submit(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor)
    rows = await _enable_auto_approval(client, coordinator, entity, max_priority="HIGH", assessment_types=["HEALTH"])
    assert rows[0]["config"]["enabled"] is True
    assert rows[0]["config"]["last_modified_by"] == str(coordinator.id)

    auto = await make_assessment(assessor, entity, priority="HIGH")
    manual = await make_assessment(assessor, entity, priority="CRITICAL")

    assert auto["verification_status"] == "AUTO_VERIFIED"
    assert auto["verified_by"] is None
    assert auto["verified_at"] is not None
    assert manual["verification_status"] == "SUBMITTED"

    resp = await client.get(
        f"{API}/verification/assessments/{manual['id']}/eligibility",
        headers=coordinator.headers,
    )
    eligibility = resp.json()["data"]
    assert eligibility["eligible"] is False
    assert eligibility["reasons"] == ["Priority CRITICAL exceeds maximum HIGH"]


async def test_auto_approval_scope_excludes_assessments(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor)
    await _enable_auto_approval(client, coordinator, entity, scope="responses", max_priority="CRITICAL")

    submitted = await make_assessment(assessor, entity, priority="LOW")

    assert submitted["verification_status"] == "SUBMITTED"


async def test_auto_approval_requires_documentation(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor)
    await _enable_auto_approval(client, coordinator, entity, requires_documentation=True)

    bare = await make_assessment(assessor, entity, priority="LOW")
    documented = await make_assessment(assessor, entity, priority="LOW", media_attachments=["photo-1.jpg"])

    assert bare["verification_status"] == "SUBMITTED"
    assert documented["verification_status"] == "AUTO_VERIFIED"


async def test_auto_approval_update_is_all_or_nothing(client, make_user, make_entity) -> None:
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity()

    resp = await client.put(
        f"{API}/verification/auto-approval",
        json={"entity_ids": [str(entity.id), str(uuid4())], "enabled": True},
        headers=coordinator.headers,
    )
    assert resp.status_code == 404

    resp = await client.get(f"{API}/verification/auto-approval/{entity.id}", headers=coordinator.headers)
    assert resp.json()["data"]["config"]["enabled"] is False


async def test_auto_approval_overview(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    enabled = await make_entity(assessor, name="Enabled Camp")
    disabled = await make_entity(assessor, name="Disabled Camp")
    await make_entity(name="Closed Camp", is_active=False)
    await _enable_auto_approval(client, coordinator, enabled)
    await make_assessment(assessor, enabled, priority="LOW")
    await make_assessment(assessor, disabled, priority="LOW")
    await make_assessment(assessor, disabled, priority="LOW")

    resp = await client.get(f"{API}/verification/auto-approval", headers=coordinator.headers)

    overview = resp.json()["data"]
    assert overview["summary"] == {
        "total_entities": 2,
        "enabled_count": 1,
        "disabled_count": 1,
        "total_pending": 2,
        "total_auto_verified": 1,
    }
    rows = {row["entity_name"]: row for row in overview["entities"]}
    assert rows["Enabled Camp"]["auto_verified_count"] == 1
    assert rows["Disabled Camp"]["pending_count"] == 2


async def test_assessment_metrics(client, make_user, make_entity, make_assessment) -> None:
    assessor = await make_user(RoleName.ASSESSOR)
    coordinator = await make_user(RoleName.COORDINATOR)
    entity = await make_entity(assessor)
    await make_assessment(assessor, entity, verify_as=coordinator)
    await make_assessment(assessor, entity, verify_as=coordinator)
    await make_assessment(assessor, entity, submit=False)
    to_reject = await make_assessment(assessor, entity)
    await make_assessment(assessor, entity)
    await client.post(
        f"{API}/verification/assessments/{to_reject['id']}/reject",
        json={"reason": "QUALITY_ISSUES", "feedback": "Blurry photos"},
        headers=coordinator.headers,
    )

    resp = await client.get(
        f"{API}/verification/metrics/assessments",
        params={"entity_id": str(entity.id)},
        headers=coordinator.headers,
    )

    metrics = resp.json()["data"]
    assert metrics["total"] == 5
    assert metrics["pending"] == 1
    assert metrics["verified"] == 2
    assert metrics["rejected"] == 1
    assert metrics["by_status"]["DRAFT"] == 1
    assert metrics["rejection_rate"] == 33.33
    assert metrics["auto_verification_rate"] == 0.0


async def test_unknown_assessment_is_404(client, make_user) -> None:
    coordinator = await make_user(RoleName.COORDINATOR)

    resp = await client.post(f"{API}/verification/assessments/{uuid4()}/verify", json={}, headers=coordinator.headers)

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "ASSESSMENT_NOT_FOUND"

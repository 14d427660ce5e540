"""Tests for transition routes: evaluate, commit and status actions."""

import pytest

from stagegate.evaluators.ports import DocumentState

pytestmark = pytest.mark.integration


@pytest.fixture
def edge(provisioned) -> dict:
    first, second, third = provisioned["stages"]
    return {"from": first, "to": second, "after": third}


def _evaluate(client, from_id, to_id, **extra):
    return client.post(
        "/api/projects/lab-1/transitions/evaluate",
        json={"from_stage_id": from_id, "to_stage_id": to_id, **extra},
    )


def _submit_documents(documents, stage):
    for name in stage["deliverables"]:
        documents.put("lab-1", stage["id"], DocumentState(name, reviewed=True))


def test_evaluate_reports_blocking_conditions(client, edge):
    response = _evaluate(client, edge["from"]["id"], edge["to"]["id"])

    assert response.status_code == 200
    body = response.json()
    assert body["admissible"] is False
    assert [r["condition_id"] for r in body["results"]] == ["task_completion_1", "document_1", "data_quality_1"]
    assert body["blocking"] == ["document_1"]
    assert body["indeterminate"] == []


def test_evaluate_skipping_stage(client, edge):
    response = _evaluate(client, edge["from"]["id"], edge["after"]["id"])

    assert response.status_code == 422
    assert response.json()["code"] == "invalid_edge"
    assert "debug_id" in response.json()


def test_evaluate_unknown_project(client):
    response = _evaluate(client, "a", "b")
    assert response.status_code == 404
    assert response.json()["code"] == "no_stages_defined"


def test_evaluate_single_condition(client, edge):
    response = client.post(
        "/api/projects/lab-1/transitions/evaluate/document_1",
        json={"from_stage_id": edge["from"]["id"], "to_stage_id": edge["to"]["id"]},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "failed"
    assert "missing" in response.json()["message"]


def test_evaluate_unknown_condition(client, edge):
    response = client.post(
        "/api/projects/lab-1/transitions/evaluate/nope",
        json={"from_stage_id": edge["from"]["id"], "to_stage_id": edge["to"]["id"]},
    )
    assert response.status_code == 404
    assert response.json()["code"] == "condition_not_found"


def test_evaluate_then_commit(client, edge, documents):
    _submit_documents(documents, edge["from"])
    decision = _evaluate(client, edge["from"]["id"], edge["to"]["id"]).json()
    assert decision["admissible"] is True

    response = client.post(
        "/api/projects/lab-1/transitions/commit",
        json={
            "from_stage_id": edge["from"]["id"],
            "to_stage_id": edge["to"]["id"],
            "decision_id": decision["decision_id"],
            "notes": "资料齐全",
        },
    )
    assert response.status_code == 201
    record = response.json()
    assert record["kind"] == "transition"
    assert record["decision_id"] == decision["decision_id"]
    assert len(record["results"]) == 3

    graph = client.get("/api/projects/lab-1/stages").json()
    statuses = [s["status"] for s in graph["stages"]]
    assert statuses == ["completed", "in_progress", "not_started"]
    assert graph["current_stage_id"] == edge["to"]["id"]

    history = client.get("/api/projects/lab-1/history").json()["records"]
    assert [r["kind"] for r in history] == ["start", "transition"]


def test_commit_reused_decision_conflicts(client, edge, documents):
    _submit_documents(documents, edge["from"])
    decision = _evaluate(client, edge["from"]["id"], edge["to"]["id"]).json()
    payload = {
        "from_stage_id": edge["from"]["id"],
        "to_stage_id": edge["to"]["id"],
        "decision_id": decision["decision_id"],
    }

    assert client.post("/api/projects/lab-1/transitions/commit", json=payload).status_code == 201
    response = client.post("/api/projects/lab-1/transitions/commit", json=payload)
    assert response.status_code == 409
    assert response.json()["code"] == "concurrent_transition_conflict"


def test_commit_inadmissible(client, edge):
    decision = _evaluate(client, edge["from"]["id"], edge["to"]["id"]).json()
    response = client.post(
        "/api/projects/lab-1/transitions/commit",
        json={
            "from_stage_id": edge["from"]["id"],
            "to_stage_id": edge["to"]["id"],
            "decision_id": decision["decision_id"],
        },
    )
    assert response.status_code == 409
    assert response.json()["code"] == "transition_not_admissible"


def test_commit_unknown_decision(client, edge):
    response = client.post(
        "/api/projects/lab-1/transitions/commit",
        json={"from_stage_id": edge["from"]["id"], "to_stage_id": edge["to"]["id"], "decision_id": "missing"},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "stale_decision"


def test_cached_evaluation(client, edge):
    first = _evaluate(client, edge["from"]["id"], edge["to"]["id"]).json()
    cached = _evaluate(client, edge["from"]["id"], edge["to"]["id"], cache_ttl=60).json()
    fresh = _evaluate(client, edge["from"]["id"], edge["to"]["id"]).json()

    assert cached["decision_id"] == first["decision_id"]
    assert fresh["decision_id"] != first["decision_id"]


def test_block_and_unblock(client, edge):
    stage_id = edge["from"]["id"]

    response = client.post(f"/api/projects/lab-1/stages/{stage_id}/block", json={"reason": "仪器故障"})
    assert response.status_code == 201
    graph = client.get("/api/projects/lab-1/stages").json()
    assert graph["project_status"] == "blocked"

    response = client.post(f"/api/projects/lab-1/stages/{stage_id}/unblock")
    assert response.status_code == 201
    assert client.get("/api/projects/lab-1/stages").json()["project_status"] == "in_progress"


def test_block_requires_reason(client, edge):
    response = client.post(f"/api/projects/lab-1/stages/{edge['from']['id']}/block", json={"reason": ""})
    assert response.status_code == 422


def test_start_twice(client, provisioned):
    response = client.post("/api/projects/lab-1/start")
    assert response.status_code == 409
    assert response.json()["code"] == "invalid_status_change"

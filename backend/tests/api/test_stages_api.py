"""Tests for stage graph routes."""

import pytest

pytestmark = pytest.mark.integration


def test_list_templates(client):
    response = client.get("/api/templates")

    assert response.status_code == 200
    keys = {t["key"] for t in response.json()}
    assert keys == {"product_registration", "research_service", "clinical_detection"}


def test_provision_and_get_graph(client):
    response = client.post("/api/projects/lab-1/stages/provision", json={"template_key": "research_service"})
    assert response.status_code == 201

    graph = client.get("/api/projects/lab-1/stages").json()
    assert graph["version"] == 1
    assert graph["project_status"] == "not_started"
    assert [s["order"] for s in graph["stages"]] == [1, 2, 3, 4]
    assert graph["statistics"]["not_started"] == 4
    assert graph["current_stage_id"] == graph["stages"][0]["id"]


def test_provision_unknown_template(client):
    response = client.post("/api/projects/lab-1/stages/provision", json={"template_key": "nope"})
    assert response.status_code == 404
    assert "debug_id" in response.json()


def test_provision_twice(client, provisioned):
    response = client.post("/api/projects/lab-1/stages/provision", json={"template_key": "research_service"})
    assert response.status_code == 409
    assert response.json()["code"] == "stages_already_defined"


def test_empty_project_graph(client):
    response = client.get("/api/projects/ghost/stages")
    assert response.status_code == 200
    assert response.json()["stages"] == []
    assert response.json()["current_stage_id"] is None


def test_current_stage_without_stages(client):
    response = client.get("/api/projects/ghost/stages/current")
    assert response.status_code == 404
    assert response.json()["code"] == "no_stages_defined"


def test_current_and_next_stage(client, provisioned):
    first, second, _ = provisioned["stages"]

    assert client.get("/api/projects/lab-1/stages/current").json()["id"] == first["id"]
    assert client.get(f"/api/projects/lab-1/stages/{first['id']}/next").json()["id"] == second["id"]


def test_next_of_terminal_stage(client, provisioned):
    last = provisioned["stages"][-1]
    response = client.get(f"/api/projects/lab-1/stages/{last['id']}/next")
    assert response.status_code == 404
    assert response.json()["code"] == "stage_not_found"


def test_add_update_delete_stage(client, provisioned):
    response = client.post("/api/projects/lab-1/stages", json={"name": "上市后监督", "estimated_duration": 90})
    assert response.status_code == 201
    stage = response.json()
    assert stage["order"] == 4
    assert stage["status"] == "not_started"

    response = client.patch(f"/api/projects/lab-1/stages/{stage['id']}", json={"description": "PMS"})
    assert response.status_code == 200
    assert response.json()["description"] == "PMS"

    response = client.delete(f"/api/projects/lab-1/stages/{stage['id']}")
    assert response.status_code == 204
    assert len(client.get("/api/projects/lab-1/stages").json()["stages"]) == 3


def test_patch_status_rejected(client, provisioned):
    stage = provisioned["stages"][1]
    response = client.patch(f"/api/projects/lab-1/stages/{stage['id']}", json={"status": "completed"})

    assert response.status_code == 422
    assert client.get("/api/projects/lab-1/stages").json()["stages"][1]["status"] == "not_started"


def test_delete_in_progress_stage(client, provisioned):
    stage = provisioned["stages"][0]
    response = client.delete(f"/api/projects/lab-1/stages/{stage['id']}")
    assert response.status_code == 409
    assert response.json()["code"] == "stage_in_use"


def test_reorder_duplicate(client, provisioned):
    _, second, third = provisioned["stages"]
    response = client.post(
        "/api/projects/lab-1/stages/reorder",
        json={"orders": {third["id"]: second["order"]}},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "duplicate_stage_order"


def test_reorder(client, provisioned):
    _, second, third = provisioned["stages"]
    response = client.post(
        "/api/projects/lab-1/stages/reorder",
        json={"orders": {second["id"]: 3, third["id"]: 2}},
    )
    assert response.status_code == 200
    assert [s["id"] for s in response.json()["stages"]][1:] == [third["id"], second["id"]]

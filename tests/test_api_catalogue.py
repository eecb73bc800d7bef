from fastapi import status

from clinreview.models.position import Role


def test_kpi_lifecycle(client):
    response = client.post("/api/kpis", json={
        "title": "Patient Satisfaction",
        "description": "Maintain patient satisfaction scores above 90%",
        "weight": 9,
        "floor": "1st Floor",
    })
    assert response.status_code == status.HTTP_201_CREATED
    kpi_id = response.json()["id"]

    response = client.put(f"/api/kpis/{kpi_id}", json={"weight": 12})
    assert response.json()["weight"] == 12

    assert client.delete(f"/api/kpis/{kpi_id}").json()["is_removed"] is True
    assert client.get("/api/kpis").json() == []
    assert [k["id"] for k in client.get("/api/kpis/removed").json()] == [kpi_id]

    assert client.post(f"/api/kpis/{kpi_id}/restore").json()["is_removed"] is False
    assert client.get("/api/kpis/floors").json() == ["1st Floor"]
    assert client.get("/api/kpis/stats").json()["active"] == 1


def test_invalid_weight_uses_error_envelope(client):
    response = client.post("/api/kpis", json={"title": "K", "weight": 50})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "VALIDATION_FAILED"
    assert body["errors"][0]["field"] == "weight"


def test_missing_kpi_is_404(client):
    response = client.get("/api/kpis/12345")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["errors"][0]["code"] == "NOT_FOUND"


def test_request_validation_errors(client):
    response = client.post("/api/kpis", json={"title": "K"})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["errors"][0]["field"] == "weight"


def test_signup_and_approval(client):
    position = client.post("/api/positions", json={"position_title": "Charge Nurse", "role": "clinician"}).json()
    response = client.post("/api/profiles", json={
        "name": "Casey", "username": "casey@example.com", "position_id": position["id"],
    })
    assert response.status_code == status.HTTP_201_CREATED
    profile = response.json()
    assert profile["accept"] is False
    assert profile["role"] == "clinician"
    assert profile["position_title"] == "Charge Nurse"

    assert client.get("/api/profiles", params={"approved_only": True}).json() == []
    approved = client.post(f"/api/profiles/{profile['id']}/approve", json={"accept": True}).json()
    assert approved["accept"] is True
    assert [p["id"] for p in client.get("/api/profiles", params={"approved_only": True}).json()] == [profile["id"]]


def test_assignment_endpoints(client, make_profile):
    director = make_profile("Dana", role=Role.DIRECTOR)
    deputy = make_profile("Drew", role=Role.DIRECTOR)
    clinician = make_profile("Casey")

    response = client.post("/api/assignments/clinicians", json={
        "subordinate_id": clinician.id, "supervisor_id": director.id,
    })
    assert response.status_code == status.HTTP_201_CREATED
    client.post("/api/assignments/directors", json={"subordinate_id": deputy.id, "supervisor_id": director.id})

    assert [p["id"] for p in client.get(f"/api/assignments/directors/{director.id}/clinicians").json()] == [clinician.id]
    assert [p["id"] for p in client.get(f"/api/assignments/directors/{director.id}/directors").json()] == [deputy.id]
    assert client.get(f"/api/assignments/directors/{deputy.id}/supervisor").json()["id"] == director.id
    assert client.get(f"/api/assignments/staff/{clinician.id}/director").json()["id"] == director.id
    assert client.get("/api/assignments/clinicians/unassigned").json() == []
    assert [p["id"] for p in client.get("/api/assignments/directors/unassigned").json()] == [director.id]

    response = client.post("/api/assignments/directors", json={
        "subordinate_id": director.id, "supervisor_id": deputy.id,
    })
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.request("DELETE", "/api/assignments/clinicians", json={
        "subordinate_id": clinician.id, "supervisor_id": director.id,
    })
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert [p["id"] for p in client.get("/api/assignments/clinicians/unassigned").json()] == [clinician.id]


def test_kpi_group_endpoints(client, make_profile, make_kpi):
    director = make_profile("Dana", role=Role.DIRECTOR)
    a, b = make_kpi("A"), make_kpi("B")

    response = client.post("/api/kpi-groups", json={
        "title": "Core Set", "director_id": director.id, "kpi_ids": [a.id, b.id],
    })
    assert response.status_code == status.HTTP_201_CREATED
    assert client.get(f"/api/kpi-groups/{director.id}").json() == ["Core Set"]
    assert client.get(f"/api/kpi-groups/{director.id}/exists", params={"title": "Core Set"}).json() == {"exists": True}

    client.put(f"/api/kpi-groups/{director.id}/Core Set", json={"kpi_ids": [b.id]})
    assert client.get(f"/api/kpi-groups/{director.id}/Core Set").json()["kpi_ids"] == [b.id]
    assert client.get(f"/api/kpi-groups/{director.id}/stats").json()["total_kpis"] == 1

    assert client.delete(f"/api/kpi-groups/{director.id}/Core Set").status_code == status.HTTP_204_NO_CONTENT
    assert client.get(f"/api/kpi-groups/{director.id}/exists", params={"title": "Core Set"}).json() == {"exists": False}

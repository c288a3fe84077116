def test_create_and_read_script(client):
    response = client.post("/script", json={"content": "notify --all", "req_id": 2})
    assert response.status_code == 200
    created = response.json()
    assert created["req_id"] == 2

    response = client.request("GET", "/script", json={"script_id": created["script_id"], "req_id": 3})
    assert response.status_code == 200
    assert response.json() == {"script_id": created["script_id"], "content": "notify --all", "req_id": 3}


def test_read_missing_script(client):
    response = client.request("GET", "/script", json={"script_id": 99})
    assert response.status_code == 404
    assert response.json() == "script not found by id 99"


def test_health(client):
    response = client.get("/health/z")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}

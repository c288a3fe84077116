from datetime import datetime, timedelta

from abn.models.dependency import Dependency
from abn.models.task_property import TaskProperty


def read(client, task_id, req_id=0):
    return client.request("GET", "/task", json={"task_id": task_id, "req_id": req_id})


# ========== TEST CREATE TASK ==========
def test_create_then_read(client):
    """Créer puis relire: même nom / completed, last_edited >= instant d'envoi"""
    before = datetime.now() - timedelta(seconds=1)
    response = client.post("/task", json={"name": "write report", "completed": False, "req_id": 7})
    assert response.status_code == 200
    data = response.json()
    assert data["req_id"] == 7
    task_id = data["task_id"]

    response = read(client, task_id, req_id=8)
    assert response.status_code == 200
    task = response.json()
    assert task["task_id"] == task_id
    assert task["name"] == "write report"
    assert task["completed"] is False
    assert task["props"] == []
    assert task["deps"] == []
    assert task["scripts"] == []
    assert task["req_id"] == 8
    assert datetime.fromisoformat(task["last_edited"]) >= before


def test_create_completed_default(client):
    response = client.post("/task", json={"name": "a"})
    assert response.status_code == 200
    assert read(client, response.json()["task_id"]).json()["completed"] is False


def test_create_batch(client):
    """Batch: une réponse par entrée, req_id conservés"""
    response = client.post(
        "/tasks",
        json=[
            {"name": "one", "completed": False, "req_id": 1},
            {"name": "two", "completed": True, "req_id": 2},
        ],
    )
    assert response.status_code == 200
    data = response.json()
    assert [entry["req_id"] for entry in data] == [1, 2]
    assert data[0]["task_id"] != data[1]["task_id"]
    assert read(client, data[1]["task_id"]).json()["completed"] is True


def test_create_rejects_negative_req_id(client):
    response = client.post("/task", json={"name": "x", "req_id": -1})
    assert response.status_code == 422


# ========== TEST READ TASK ==========
def test_read_missing_task(client):
    response = read(client, 42)
    assert response.status_code == 404
    assert response.json() == "task not found by id 42"


def test_read_batch_mixes_ok_and_err(client, make_task):
    """Le batch réussit même si une entrée échoue"""
    task_id = make_task("present")
    response = client.request(
        "GET",
        "/tasks",
        json=[{"task_id": task_id, "req_id": 1}, {"task_id": 999, "req_id": 2}],
    )
    assert response.status_code == 200
    data = response.json()
    assert data[0]["Ok"]["name"] == "present"
    assert data[0]["Ok"]["req_id"] == 1
    assert data[1] == {"Err": "task not found by id 999"}


# ========== TEST UPDATE TASK ==========
def test_update_name_and_checked(client, make_task):
    task_id = make_task("old")
    response = client.put("/task", json={"task_id": task_id, "name": "new", "checked": True, "req_id": 3})
    assert response.status_code == 200
    assert response.json()["task_id"] == task_id
    assert response.json()["req_id"] == 3

    task = read(client, task_id).json()
    assert task["name"] == "new"
    assert task["completed"] is True


def test_empty_update_is_idempotent(client, make_task):
    """Diff vide: rien ne change, last_edited compris"""
    task_id = make_task("stable")
    before = read(client, task_id).json()

    for _ in range(2):
        response = client.put("/task", json={"task_id": task_id, "req_id": 5})
        assert response.status_code == 200
        assert response.json()["req_id"] == 5

    after = read(client, task_id).json()
    assert after == before


def test_update_touches_last_edited(client, make_task):
    task_id = make_task("t")
    before = datetime.fromisoformat(read(client, task_id).json()["last_edited"])
    client.put("/task", json={"task_id": task_id, "checked": True})
    after = datetime.fromisoformat(read(client, task_id).json()["last_edited"])
    assert after >= before


def test_update_missing_task(client):
    response = client.put("/task", json={"task_id": 12, "name": "ghost"})
    assert response.status_code == 404
    assert response.json() == "task not found by id 12"


def test_update_batch_reports_failed_entries(client, make_task):
    """Chaque entrée a sa propre transaction; l'échec donne task_id -1 + error"""
    task_id = make_task("ok")
    response = client.put(
        "/tasks",
        json=[
            {"task_id": task_id, "name": "renamed", "req_id": 1},
            {"task_id": 404, "name": "nope", "req_id": 2},
        ],
    )
    assert response.status_code == 200
    data = response.json()
    assert data[0]["task_id"] == task_id
    assert data[0]["error"] is None
    assert data[1]["task_id"] == -1
    assert data[1]["req_id"] == 2
    assert data[1]["error"] == "task not found by id 404"
    assert read(client, task_id).json()["name"] == "renamed"


# ========== TEST DELETE TASK ==========
def test_delete_then_read_is_not_found(client, make_task):
    task_id = make_task("doomed")
    response = client.request("DELETE", "/task", json={"task_id": task_id, "req_id": 9})
    assert response.status_code == 200
    assert response.json() == 9
    assert read(client, task_id).status_code == 404


def test_delete_twice(client, make_task):
    task_id = make_task("once")
    assert client.request("DELETE", "/task", json={"task_id": task_id}).status_code == 200
    response = client.request("DELETE", "/task", json={"task_id": task_id})
    assert response.status_code == 404
    assert response.json() == f"task not found by id {task_id}"


def test_delete_cascades(client, db, make_task, set_prop):
    """Props, dépendances (dans les deux sens) supprimées avec la tâche"""
    a = make_task("a")
    b = make_task("b")
    set_prop(a, "dog", "Number", 3)
    client.put("/task", json={"task_id": a, "deps_to_add": [b]})
    client.put("/task", json={"task_id": b, "deps_to_add": [a]})

    assert client.request("DELETE", "/task", json={"task_id": a}).status_code == 200

    assert db.query(TaskProperty).filter_by(task_id=a).count() == 0
    assert db.query(Dependency).count() == 0
    assert read(client, b).json()["deps"] == []


def test_delete_batch_is_all_or_nothing(client, make_task):
    a = make_task("a")
    response = client.request(
        "DELETE",
        "/tasks",
        json=[{"task_id": a, "req_id": 1}, {"task_id": 777, "req_id": 2}],
    )
    assert response.status_code == 404
    # la première suppression a été annulée
    assert read(client, a).status_code == 200

    b = make_task("b")
    response = client.request(
        "DELETE",
        "/tasks",
        json=[{"task_id": a, "req_id": 1}, {"task_id": b, "req_id": 2}],
    )
    assert response.status_code == 200
    assert response.json() == [1, 2]
    assert read(client, a).status_code == 404
    assert read(client, b).status_code == 404

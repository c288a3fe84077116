import sys
from pathlib import Path

# Ajoute la racine du projet au PYTHONPATH EN PREMIER
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from sqlalchemy.orm import sessionmaker

from abn.core.database import make_engine

# Créer engine SQLite pour tests AVANT d'importer app (FK activées par make_engine)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///./test.db"
test_engine = make_engine(SQLALCHEMY_TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# PATCH: remplacer le engine et SessionLocal du core.database AVANT d'importer app
import abn.core.database
abn.core.database.engine = test_engine
abn.core.database.SessionLocal = TestingSessionLocal

# Maintenant importer app (qui utilisera notre engine SQLite)
from abn.core.database import Base, get_db
from abn.main import app
from abn.models import task, task_property, dependency, view, script, user  # noqa: F401


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_teardown():
    """Crée et nettoie la DB avant/après chaque test"""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


# Override la dépendance
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def client():
    """Client de test FastAPI"""
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture
def db():
    """Session DB pour les tests"""
    db = TestingSessionLocal()
    yield db
    db.close()


@pytest.fixture
def make_task(client):
    """Crée une tâche via l'API et retourne son id"""
    def _make(name="task", completed=False):
        response = client.post("/task", json={"name": name, "completed": completed, "req_id": 0})
        assert response.status_code == 200
        return response.json()["task_id"]
    return _make


@pytest.fixture
def set_prop(client):
    """Ajoute une propriété typée à une tâche"""
    def _set(task_id, name, type_, value):
        response = client.put(
            "/task",
            json={"task_id": task_id, "props_to_add": [{"name": name, "value": {"type": type_, "value": value}}]},
        )
        assert response.status_code == 200, response.json()
        return response
    return _set

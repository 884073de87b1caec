import os

# Point the app engine at in-memory SQLite before anything imports the settings.
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from lessonforge.api.deps import get_db  # noqa: E402
from lessonforge.db.base import Base  # noqa: E402
from lessonforge.main import app  # noqa: E402


@pytest.fixture()
def client():
    # each test gets its own isolated in-memory database
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def seeded(client):
    """Creates one teacher, student, subject, subject type and booth through the API."""
    level = client.post("/api/subject-types", json={"name": "High school"}).json()
    math = client.post("/api/subjects", json={"name": "Math"}).json()
    teacher = client.post(
        "/api/teachers",
        json={
            "name": "Aiko Tanaka",
            "email": "aiko@example.com",
            "subject_preferences": [{"subject_id": math["id"], "subject_type_ids": [level["id"]]}],
        },
    ).json()
    student = client.post(
        "/api/students",
        json={
            "name": "Ren Sato",
            "subject_preferences": [{"subject_id": math["id"], "subject_type_ids": [level["id"]]}],
        },
    ).json()
    booth = client.post("/api/booths/", json={"name": "Booth A"}).json()
    return {"teacher": teacher, "student": student, "subject": math, "subject_type": level, "booth": booth}

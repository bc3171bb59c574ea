"""
Shared fixtures: an in-memory SQLite database, a temp-dir file store and a
TestClient wired to both through dependency overrides.

Run: pytest -v
"""

import os

# Must be set before ats_intake.core.config builds its Settings instance.
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ats_intake.db.database import get_db
from ats_intake.db.models import Base, Candidate, Education, Experience
from ats_intake.main import app
from ats_intake.storage.local_files import LocalFileStorage, StagedFile, get_file_storage


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def file_storage(tmp_path):
    return LocalFileStorage(tmp_path / "staging", tmp_path / "uploads")


@pytest.fixture
def client(session_factory, file_storage):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: file_storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_payload():
    """Builds a valid candidateData dict; keyword arguments override fields."""
    def _make(**overrides):
        payload = {
            "firstName": "John",
            "lastName": "Doe",
            "email": "john@example.com",
            "phone": "+1234567890",
            "educations": [],
            "experiences": [],
        }
        payload.update(overrides)
        return payload
    return _make


@pytest.fixture
def stage_file(file_storage):
    """Writes a file into the staging area and returns its StagedFile."""
    counter = {"n": 0}

    def _stage(original_name="resume.pdf", mime_type="application/pdf", content=b"%PDF-1.4 test"):
        counter["n"] += 1
        file_name = f"resume-test-{counter['n']}{Path(original_name).suffix.lower()}"
        temp_path = file_storage.staging_dir / file_name
        temp_path.write_bytes(content)
        return StagedFile(
            original_name=original_name,
            mime_type=mime_type,
            size=len(content),
            file_name=file_name,
            temp_path=temp_path,
        )
    return _stage


@pytest.fixture
def add_candidate(db_session):
    """Inserts a candidate directly, optionally with institutions and companies."""
    counter = {"n": 0}

    def _add(email=None, institutions=(), companies=()):
        counter["n"] += 1
        candidate = Candidate(
            first_name="Seed",
            last_name="Candidate",
            email=email or f"seed{counter['n']}@example.com",
            phone="+1234567890",
            educations=[
                Education(
                    institution=name, degree="BSc", field_of_study="CS",
                    start_date=date(2015, 9, 1), end_date=date(2019, 6, 1), current=False,
                )
                for name in institutions
            ],
            experiences=[
                Experience(
                    company=name, position="Engineer",
                    start_date=date(2019, 7, 1), current=True,
                )
                for name in companies
            ],
        )
        db_session.add(candidate)
        db_session.commit()
        return candidate
    return _add

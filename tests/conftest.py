import os

# Settings are read at import time
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key-0123456789abcdef")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

from enrollment_portal.core.cache import EnrollmentCache
from enrollment_portal.core.encryption import FieldEncryptor
from enrollment_portal.main import create_app, init_state
from enrollment_portal.schemas.user_schemas import Principal
from enrollment_portal.services.enrollment_repository import EnrollmentRepository
from enrollment_portal.services.enrollment_service import EnrollmentService
from enrollment_portal.services.settings_service import SettingsService

from tests.fakes import FakeFirestore, FakeIdentityProvider

TODAY = date(2026, 10, 18)
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

TEST_KEY = "test-encryption-key-0123456789abcdef"

ADMIN_TOKEN = "admin-token"
STUDENT_TOKEN = "student-token"
NO_ROLE_TOKEN = "no-role-token"


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def junior_form(**overrides):
    form = {
        "type": "junior",
        "schoolYear": "2025-2026",
        "gradeLevel": "7",
        "lrn": "123456789012",
        "fullName": "Juan Dela Cruz",
        "birthDate": "2013-05-14",
        "age": 13,
        "gender": "Male",
        "religion": "Catholic",
        "address": "123 Rizal Street, Quezon City",
        "lastSchool": "San Isidro Elementary",
        "generalAverage": 89.5,
        "isTransferee": False,
        "guardianName": "Maria Dela Cruz",
        "guardianRelation": "Mother",
        "contactNumber": "0917-123-4567",
        "hasForm10": False,
        "hasPSA": True,
        "hasBaptismal": False,
        "hasGoodMoral": False,
    }
    form.update(overrides)
    return form


def senior_form(**overrides):
    form = junior_form(
        type="senior",
        gradeLevel="11",
        birthDate="2009-02-03",
        age=17,
        strand="STEM",
        semester="1st",
        birthPlace="Manila",
        fatherName="Pedro Santos",
        fatherOccupation="Driver",
        motherName="Ana Santos",
        motherOccupation="Teacher",
        hasPSA=False,
        hasForm9=True,
    )
    form.update(overrides)
    return form


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return EnrollmentCache(ttl=300, clock=clock)


@pytest.fixture
def repository(db, cache):
    return EnrollmentRepository(db, cache=cache, watch_client_factory=lambda: db, archive_strategy="flag")


@pytest.fixture
def encryptor():
    return FieldEncryptor(key=TEST_KEY, enabled=True)


@pytest.fixture
def settings_service(db):
    return SettingsService(db)


@pytest.fixture
def enrollment_service(repository, encryptor, settings_service):
    return EnrollmentService(repository, encryptor, settings_service)


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider({
        ADMIN_TOKEN: Principal(uid="admin-1", email="registrar@spa.edu.ph", displayName="Registrar"),
        STUDENT_TOKEN: Principal(uid="student-1", email="juan@example.com", displayName="Juan"),
        NO_ROLE_TOKEN: Principal(uid="legacy-1", email="legacy@example.com"),
    })


@pytest.fixture
def app(db, identity_provider):
    app = create_app()
    init_state(app, db, identity_provider=identity_provider, watch_client_factory=lambda: db)
    db.seed("users", "admin-1", {"uid": "admin-1", "email": "registrar@spa.edu.ph", "role": "admin"})
    # Stored before roles existed
    db.seed("users", "legacy-1", {"uid": "legacy-1", "email": "legacy@example.com"})
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}

"""
Shared test fixtures for Malafati.
Each test gets its own SQLite file and an in-memory FakeDrive.
Zero network calls: get_drive_client is monkeypatched.
"""
import os

import pytest

from fakes import FakeDrive

TEST_SECRET = "test-secret"
ROOT_FOLDER_ID = "R1"
MATH = "رياضيات"
SCIENCE = "علوم"


@pytest.fixture
def app(tmp_path):
    from malafati.app import create_app

    app = create_app({
        "TESTING": True,
        "DATABASE_URL": f"sqlite:///{os.path.join(tmp_path, 'malafati.db')}",
        "JWT_SECRET": TEST_SECRET,
        "APP_BASE_URL": "http://testserver",
        "FOLDER_BATCH_SIZE": 3,
        "FOLDER_BATCH_DELAY": 0,
        "DEFAULT_SUBJECT": "عام",
        "FOLDER_CATEGORY_SUBFOLDERS": [],
    })
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    """A session on the app's database, separate from the request sessions.
    Call db.expire_all() before reading rows a request has changed."""
    from malafati.db import SessionLocal

    db = SessionLocal()
    yield db
    db.close()


def seed_teacher(db, name="أ. منى", email="mona@example.com", drive_folder_id=ROOT_FOLDER_ID,
                 access_token="token", link_code=None, subjects=(MATH, SCIENCE)):
    from malafati import storage
    from malafati.models import Subject, Teacher

    teacher = Teacher(
        name=name, email=email, school_name="مدرسة النور",
        drive_folder_id=drive_folder_id, access_token=access_token,
        refresh_token="refresh", link_code=link_code, is_active=True,
    )
    for subject_name in subjects:
        subject = storage.get_subject_by_name(db, subject_name) or Subject(name_ar=subject_name)
        teacher.subjects.append(subject)
    db.add(teacher)
    db.commit()
    return teacher


def seed_student(db, teacher, name, civil_id, subjects=(), folder_created=False, drive_folder_id=None):
    from malafati import storage

    ids = [storage.get_subject_by_name(db, s).id for s in subjects]
    student = storage.create_student(db, teacher.id, civil_id, name, "الصف الخامس", 1, subject_ids=ids)
    if folder_created:
        storage.mark_folder_created(db, student.id, drive_folder_id)
    return student


@pytest.fixture
def make_teacher(db):
    return lambda **kwargs: seed_teacher(db, **kwargs)


@pytest.fixture
def make_student(db):
    return lambda teacher, name, civil_id, **kwargs: seed_student(db, teacher, name, civil_id, **kwargs)


@pytest.fixture
def teacher(db):
    return seed_teacher(db, link_code="PARENT01")


@pytest.fixture
def other_teacher(db):
    return seed_teacher(db, name="أ. سالم", email="salem@example.com", drive_folder_id="R2",
                        link_code="PARENT02", subjects=(MATH,))


@pytest.fixture
def auth_headers(teacher):
    from malafati.auth import create_token
    return {"Authorization": f"Bearer {create_token(teacher.id, secret=TEST_SECRET)}"}


@pytest.fixture
def fake_drive(monkeypatch):
    """Route every Drive call made by the app into one FakeDrive."""
    import malafati.services.drive_client as drive_client

    drive = FakeDrive()
    monkeypatch.setattr(
        drive_client, "get_drive_client",
        lambda teacher: drive if teacher is not None and teacher.access_token else None,
    )
    return drive


@pytest.fixture
def auth_headers_for():
    from malafati.auth import create_token
    return lambda teacher: {"Authorization": f"Bearer {create_token(teacher.id, secret=TEST_SECRET)}"}

"""
Test: engine setup and seed data.
"""
from malafati.config import COMMON_SUBJECTS
from malafati.db import connect_args_for, seed_subjects
from malafati.models import Subject


class TestConnectArgs:
    def test_sqlite_allows_cross_thread_use(self):
        assert connect_args_for("sqlite:///data/app.db") == {"check_same_thread": False}

    def test_other_databases_get_none(self):
        assert connect_args_for("postgresql://malafati@localhost/malafati") == {}


class TestSeedSubjects:
    def test_common_subjects_present(self, db):
        names = [name for (name,) in db.query(Subject.name_ar)]
        assert set(COMMON_SUBJECTS) <= set(names)

    def test_reseeding_adds_nothing(self, db):
        before = db.query(Subject).count()
        seed_subjects(db)
        assert db.query(Subject).count() == before

"""
Engine and per-request session handling.
"""
import logging
import os

from flask import g
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .config import COMMON_SUBJECTS, DEFAULT_CAPTCHA_QUESTIONS
from .models import Base, CaptchaQuestion, Subject

logger = logging.getLogger(__name__)

engine = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def connect_args_for(database_url):
    # Provisioning workers share SQLite connections across threads
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def init_db(database_url):
    """Create the engine, create missing tables, seed subjects and captcha questions."""
    global engine
    if database_url.startswith("sqlite:///"):
        db_path = database_url[len("sqlite:///"):]
        if db_path and db_path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)

    engine = create_engine(database_url, connect_args=connect_args_for(database_url))
    SessionLocal.configure(bind=engine)
    Base.metadata.create_all(engine)
    logger.info("Using database at %s", database_url)

    session = SessionLocal()
    try:
        seed_subjects(session)
        seed_captcha_questions(session)
    finally:
        session.close()
    return engine


def seed_subjects(session):
    """Add any missing common subject. Existing subjects are left alone."""
    existing = {name for (name,) in session.query(Subject.name_ar)}
    missing = [name for name in COMMON_SUBJECTS if name not in existing]
    for name in missing:
        session.add(Subject(name_ar=name))
    if missing:
        session.commit()
        logger.info("Added %d common subjects", len(missing))


def seed_captcha_questions(session):
    if session.query(CaptchaQuestion).first() is not None:
        return
    for question, answer in DEFAULT_CAPTCHA_QUESTIONS:
        session.add(CaptchaQuestion(question=question, answer=answer, is_active=True))
    session.commit()
    logger.info("Captcha questions initialized")


def get_session():
    """Return the session bound to the current request, opening one if needed."""
    if "db_session" not in g:
        g.db_session = SessionLocal()
    return g.db_session


def close_session(exc=None):
    session = g.pop("db_session", None)
    if session is None:
        return
    if exc is not None:
        session.rollback()
    session.close()

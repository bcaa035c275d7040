import os
import unittest
from datetime import datetime, timezone
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure settings can be initialized in test environments
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")

from app.core.config import settings
from app.core.security import hash_password, issue_session_token
from app.db.session import get_db
from app.main import app
from app.models.form import Form
from app.models.response import FormResponse
from app.models.user import User

API = settings.API_PREFIX


def sample_questions():
    return [
        {"id": "q1", "type": "text", "question": "What did you like?", "required": True},
        {"id": "q2", "type": "multiple-choice", "question": "Rate us", "options": ["Good", "Bad"], "required": True},
        {"id": "q3", "type": "text", "question": "Anything else?", "required": False},
    ]


class ApiTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        User.__table__.create(bind=cls.engine)
        Form.__table__.create(bind=cls.engine)
        FormResponse.__table__.create(bind=cls.engine)

    @classmethod
    def tearDownClass(cls):
        FormResponse.__table__.drop(bind=cls.engine)
        Form.__table__.drop(bind=cls.engine)
        User.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            db.execute(delete(FormResponse))
            db.execute(delete(Form))
            db.execute(delete(User))
            db.commit()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

        self._settings_backup = {
            "APP_ENV": settings.APP_ENV,
            "REGISTRATION_ENABLED": settings.REGISTRATION_ENABLED,
            "DELETE_RESPONSES_WITH_FORM": settings.DELETE_RESPONSES_WITH_FORM,
            "REJECT_UNKNOWN_QUESTION_IDS": settings.REJECT_UNKNOWN_QUESTION_IDS,
        }

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        for key, value in self._settings_backup.items():
            setattr(settings, key, value)

    def create_user(self, email="owner@example.com", password="secret-pass", name="Owner") -> User:
        with self.SessionLocal() as db:
            user = User(email=email, name=name, password_hash=hash_password(password), role="admin", is_active=True)
            db.add(user)
            db.commit()
            db.refresh(user)
            db.expunge(user)
            return user

    def auth_headers(self, user: User) -> dict:
        token = issue_session_token(user_id=str(user.id), email=user.email, name=user.name)
        return {"Authorization": f"Bearer {token}"}

    def insert_form(self, owner: User, *, title="Team feedback", questions=None, is_active=True) -> Form:
        with self.SessionLocal() as db:
            form = Form(
                title=title,
                description=None,
                questions=questions if questions is not None else sample_questions(),
                owner_user_id=owner.id,
                is_active=is_active,
            )
            db.add(form)
            db.commit()
            db.refresh(form)
            db.expunge(form)
            return form

    def insert_response(self, form: Form, answers, *, submitted_at=None, ip_address="10.0.0.1") -> FormResponse:
        with self.SessionLocal() as db:
            row = FormResponse(
                form_id=form.id,
                answers=answers,
                submitted_at=submitted_at or datetime.now(timezone.utc),
                ip_address=ip_address,
                user_agent="pytest",
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            db.expunge(row)
            return row

    def count_forms(self) -> int:
        with self.SessionLocal() as db:
            return db.query(Form).count()

    def count_responses(self, form_id=None) -> int:
        with self.SessionLocal() as db:
            query = db.query(FormResponse)
            if form_id is not None:
                query = query.filter(FormResponse.form_id == form_id)
            return query.count()

    @staticmethod
    def unknown_id() -> str:
        return str(uuid4())

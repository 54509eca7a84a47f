# app/tests/conftest.py
from contextlib import contextmanager
from datetime import datetime
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.app_factory import create_app
from app.db.enums import JobPriority, JobStatus, UserRole
from app.db.init_db import init_db
from app.models.customer import Customer
from app.models.job import Job
from app.models.notification import Notification
from app.services.user_service import UserService

PASSWORD = "Passw0rd1"


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", overrides={
        "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "SESSION_FILE_DIR": str(tmp_path / "sessions"),
        "NOTIFICATIONS_SYNC": True,
        "BCRYPT_ROUNDS": 4,
    })
    init_db(app.extensions["database"])
    yield app
    app.extensions["notifications"].shutdown()
    app.extensions["database"].dispose()


@pytest.fixture
def database(app):
    return app.extensions["database"]


@pytest.fixture
def session_scope(database):
    """Short-lived session; commits on success. Never keep one open across a request."""
    @contextmanager
    def scope():
        db = database.session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
    return scope


@pytest.fixture
def make_user(session_scope):
    def factory(role=UserRole.Viewer, name=None, email=None, active=True):
        name = name or f"{role.value} {uuid4().hex[:6]}"
        email = email or f"{uuid4().hex[:10]}@example.com"
        with session_scope() as db:
            user = UserService(db, bcrypt_rounds=4).create_user(
                name=name, email=email, password=PASSWORD, role=role,
            )
            user.is_active = active
            db.flush()
            return SimpleNamespace(id=user.id, name=user.name, email=user.email, role=role)
    return factory


@pytest.fixture
def make_customer(session_scope):
    def factory(company_name="Acme Precast", deleted=False):
        with session_scope() as db:
            customer = Customer(
                id=str(uuid4()),
                company_name=company_name,
                deleted_at=datetime.now() if deleted else None,
            )
            db.add(customer)
            db.flush()
            return customer.id
    return factory


@pytest.fixture
def make_job(session_scope, make_customer):
    """Insert a job directly, bypassing permission checks (e.g. a job created by a Drafter)."""
    def factory(job_number="LP-001", job_name="Wet Well", created_by=None, project_manager_id=None,
                customer_id=None, status=JobStatus.Estimation, priority=JobPriority.medium, **extra):
        extra.setdefault("created_date", datetime.now())
        customer_id = customer_id or make_customer()
        with session_scope() as db:
            job = Job(
                id=str(uuid4()),
                job_number=job_number,
                job_name=job_name,
                customer_id=customer_id,
                status=status,
                priority=priority,
                created_by=created_by,
                project_manager_id=project_manager_id,
                **extra,
            )
            db.add(job)
            db.flush()
            return job.id
    return factory


@pytest.fixture
def login(app):
    """Return a test client signed in as ``user``."""
    def factory(user, password=PASSWORD):
        client = app.test_client()
        res = client.post("/auth/login", json={"email": user.email, "password": password})
        assert res.status_code == 200, res.get_json()
        return client
    return factory


@pytest.fixture
def notifications_for(session_scope):
    def fetch(user_id):
        with session_scope() as db:
            rows = (
                db.query(Notification)
                .filter(Notification.user_id == user_id)
                .order_by(Notification.created_at)
                .all()
            )
            return [
                SimpleNamespace(
                    id=n.id,
                    type=n.type.value,
                    title=n.title,
                    message=n.message,
                    job_id=n.job_id,
                    customer_id=n.customer_id,
                    estimate_id=n.estimate_id,
                    read=n.read,
                )
                for n in rows
            ]
    return fetch

import os

_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret
os.environ.setdefault("ENV", "test")

import itertools
import subprocess
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

REPO_ROOT = Path(__file__).resolve().parents[2]
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite:///{REPO_ROOT / '.pytest_repro_tracker.db'}",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from repro_tracker import database
from repro_tracker.database import Base, SessionLocal
from repro_tracker.models import Department, File, User
from repro_tracker.models.file import FileStatus, Stage

_is_postgres = make_url(TEST_DATABASE_URL).drivername.startswith("postgresql")
_seq = itertools.count(1)


def _ensure_database_exists(database_url: str) -> None:
    url = make_url(database_url)

    if not url.drivername.startswith("postgresql"):
        return

    db_name = url.database
    admin_url = url.set(database="postgres")
    admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")

    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": db_name},
            ).scalar()
            if not exists:
                safe_db_name = db_name.replace('"', '""')
                conn.execute(text(f'CREATE DATABASE "{safe_db_name}"'))
    finally:
        admin_engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_database() -> None:
    database.configure_database()

    if _is_postgres:
        _ensure_database_exists(TEST_DATABASE_URL)
        env = os.environ.copy()
        env["DATABASE_URL"] = TEST_DATABASE_URL
        subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            cwd=REPO_ROOT,
            env=env,
        )
    else:
        Base.metadata.drop_all(bind=database.engine)
        Base.metadata.create_all(bind=database.engine)


def _truncate_all() -> None:
    with database.engine.begin() as conn:
        if _is_postgres:
            quoted = ", ".join(f'"public"."{t.name}"' for t in Base.metadata.sorted_tables)
            conn.execute(text(f"TRUNCATE TABLE {quoted} RESTART IDENTITY CASCADE"))
        else:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture(scope="function", autouse=True)
def _truncate_tables_between_tests():
    _truncate_all()
    yield
    _truncate_all()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def department_factory():
    def make(code=None, name=None) -> Department:
        n = next(_seq)
        code = code or f"DEPT{n}"
        session = SessionLocal()
        try:
            row = session.query(Department).filter(Department.code == code).first()
            if row is None:
                row = Department(code=code, name=name or code.title())
                session.add(row)
                session.commit()
                session.refresh(row)
            return row
        finally:
            session.close()

    return make


@pytest.fixture
def user_factory(department_factory):
    def make(role="GRAFIKER", department_id=None, full_name=None) -> User:
        n = next(_seq)
        if department_id is None:
            department_id = department_factory(code="REPRO", name="Repro").id
        session = SessionLocal()
        try:
            row = User(
                username=f"user{n}",
                full_name=full_name or f"User {n}",
                role=role,
                department_id=department_id,
                is_active=True,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return row
        finally:
            session.close()

    return make


@pytest.fixture
def file_factory(department_factory):
    def make(
        stage=Stage.REPRO,
        status=FileStatus.IN_REPRO,
        assigned_designer_id=None,
        target_assignee_id=None,
        department_id=None,
        priority="NORMAL",
        file_type=None,
        difficulty_weight=1.0,
    ) -> File:
        n = next(_seq)
        if department_id is None:
            department_id = department_factory(code="REPRO", name="Repro").id
        session = SessionLocal()
        try:
            row = File(
                file_no=f"REP-2026-{n:04d}",
                customer_name=f"Customer {n}",
                stage=stage.value,
                status=status.value,
                priority=priority,
                file_type=file_type,
                difficulty_weight=difficulty_weight,
                assigned_designer_id=assigned_designer_id,
                target_assignee_id=target_assignee_id,
                current_department_id=department_id,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return row
        finally:
            session.close()

    return make

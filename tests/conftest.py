import os
import uuid
from decimal import Decimal
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

ROOT = Path(__file__).resolve().parent.parent

# Module-level setup: point the app at a throwaway database before any test
# module imports `rentms.db`.
data_dir = ROOT / "data"
data_dir.mkdir(exist_ok=True)
test_db_path = data_dir / "test.db"
for suffix in ("", "-wal", "-shm"):
    stale = Path(str(test_db_path) + suffix)
    if stale.exists():
        stale.unlink()

test_db_url = f"sqlite:///{test_db_path.as_posix()}"
os.environ["DATABASE_URL"] = test_db_url

# Run alembic migrations once at import time so `rentms` imports see the schema.
cfg = Config(str(ROOT / "alembic.ini"))
cfg.set_main_option("script_location", str(ROOT / "alembic"))
cfg.set_main_option("sqlalchemy.url", test_db_url)
command.upgrade(cfg, "head")


@pytest.fixture(scope="session", autouse=True)
def prepare_test_db():
    """Session-scoped fixture; removes the test database afterwards."""
    yield
    from rentms.db import engine

    engine.dispose()
    for suffix in ("", "-wal", "-shm"):
        leftover = Path(str(test_db_path) + suffix)
        if leftover.exists():
            leftover.unlink()


@pytest.fixture
def session():
    """Fresh in-memory database per test for service-level tests."""
    import rentms.models  # noqa: F401

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


def make_tenant(session, name="Tenant", base_rent=Decimal("0"), is_active=True, role="tenant", **kw):
    from rentms.models import User

    user = User(
        name=name,
        email=kw.pop("email", f"{uuid.uuid4().hex[:10]}@example.com"),
        phone=kw.pop("phone", "5550000"),
        password_hash="not-a-real-hash",
        role=role,
        unit=kw.pop("unit", "A-1"),
        base_rent=base_rent,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


class RecordingNotifier:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def notify(self, tenant, bill):
        self.calls.append((tenant, bill))
        if self.fail:
            raise RuntimeError("smtp down")


@pytest.fixture
def tenant_factory(session):
    def _make(**kw):
        return make_tenant(session, **kw)

    return _make


@pytest.fixture
def recorder():
    return RecordingNotifier()

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import storefront.persistence.db as db
from storefront.core.config import get_settings
from storefront.demo import seed_demo_catalog
from storefront.persistence.models import Base, DiscountModel


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    settings = get_settings()
    settings.payment_backend = "fake"
    settings.auth_enabled = True

    engine = db.create_engine_from_url(f"sqlite+pysqlite:///{test_db_path}")
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    db.engine = engine
    db.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with db.session_scope() as session:
        seed_demo_catalog(session)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(configure_test_engine):
    from storefront.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def session(configure_test_engine):
    with db.session_scope() as s:
        yield s


@pytest.fixture()
def admin_headers():
    return {"X-API-Key": get_settings().admin_api_key}


@pytest.fixture()
def make_discount(configure_test_engine):
    """Insert a committed discount with a unique code and return its code."""

    def _make(type_: str = "PERCENTAGE", value: str = "20", **fields) -> str:
        code = fields.pop("code", None) or f"T{uuid.uuid4().hex[:10].upper()}"
        now = datetime.now(timezone.utc)
        with db.session_scope() as s:
            s.add(
                DiscountModel(
                    code=code,
                    type=type_,
                    value=Decimal(value),
                    usage_count=fields.pop("usage_count", 0),
                    is_active=fields.pop("is_active", True),
                    created_at=now,
                    updated_at=now,
                    **fields,
                )
            )
        return code

    return _make

"""
Pytest fixtures for the depreciation test suite.

Provides:
- An in-memory SQLite database per test (StaticPool keeps one connection)
- Business unit / category / asset factories
- Snapshot factory for the pure calculation modules
- A FastAPI TestClient bound to the test database, plus token helpers
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-depreciation-suite")

import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from assetops.core.database import init_db
from assetops.models import (
    Asset, AssetCategory, BusinessUnit, DepreciationMethod
)
from assetops.services.depreciation_types import Actor, AssetSnapshot


@pytest.fixture
def admin():
    return Actor(id="user-admin", role="ADMIN", username="admin")


@pytest.fixture
def viewer():
    return Actor(id="user-viewer", role="VIEWER", username="viewer")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
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
def business_unit(db_session):
    bu = BusinessUnit(name="Head Office", code="HO")
    db_session.add(bu)
    db_session.commit()
    return bu


@pytest.fixture
def categories(db_session, business_unit):
    equipment = AssetCategory(name="Equipment", code="EQ", business_unit_id=business_unit.id)
    vehicles = AssetCategory(name="Vehicles", code="VH", business_unit_id=business_unit.id)
    db_session.add_all([equipment, vehicles])
    db_session.commit()
    return {"equipment": equipment, "vehicles": vehicles}


@pytest.fixture
def make_asset(db_session, business_unit, categories):
    """
    Factory for committed assets. Defaults describe a fresh straight line asset:
    price 120000, salvage 0, 1000 per month, straight line, never depreciated.
    """
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        purchase_price = Decimal(str(overrides.pop("purchase_price", "120000.00")))
        book_value = overrides.pop("current_book_value", None)
        book_value = purchase_price if book_value is None else Decimal(str(book_value))
        category = overrides.pop("category", "equipment")

        values = dict(
            item_code=f"A-{counter['n']:03d}",
            description=f"Asset {counter['n']}",
            category_id=categories[category].id,
            business_unit_id=business_unit.id,
            purchase_date=date(2024, 1, 1),
            purchase_price=purchase_price,
            salvage_value=Decimal("0.00"),
            monthly_depreciation=Decimal("1000.00"),
            depreciation_method=DepreciationMethod.STRAIGHT_LINE.value,
            current_book_value=book_value,
            accumulated_depreciation=purchase_price - book_value,
            depreciation_start_date=date(2024, 1, 1),
        )
        values.update(overrides)
        asset = Asset(**values)
        db_session.add(asset)
        db_session.commit()
        return asset

    return _make


@pytest.fixture
def make_snapshot():
    """Factory for detached asset state, fresh straight line asset by default"""

    def _make(**overrides):
        values = dict(
            id=1,
            item_code="A-001",
            description="Forklift",
            category_id=1,
            category_name="Equipment",
            method=DepreciationMethod.STRAIGHT_LINE,
            purchase_price=Decimal("120000.00"),
            salvage_value=Decimal("0.00"),
            current_book_value=Decimal("120000.00"),
            accumulated_depreciation=Decimal("0.00"),
            monthly_depreciation=Decimal("1000.00"),
            depreciation_start_date=date(2024, 1, 1),
        )
        values.update(overrides)
        return AssetSnapshot(**values)

    return _make


# =============================================================================
# API fixtures
# =============================================================================


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient
    from assetops.core.database import get_db
    from assetops.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    from assetops.core.security import create_access_token

    def _headers(role="ADMIN", subject="user-1", business_unit_id=None):
        claims = {"sub": subject, "username": subject, "role": role}
        if business_unit_id is not None:
            claims["business_unit_id"] = business_unit_id
        return {"Authorization": f"Bearer {create_access_token(claims)}"}

    return _headers

"""
Pytest configuration and fixtures for the pharmacy backend.

The app reads its settings at import time, so the test database and log
directory are pointed at a temporary folder before anything from the app is
imported.
"""
import os
import tempfile
from datetime import date

_TMP_DIR = tempfile.mkdtemp(prefix="clinic-pharmacy-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from crud import inventory_batches as crud_inventory_batches
from crud import medicine as crud_medicine
from database import Base, SessionLocal, engine
from main import app
from schemas.inventory_batches import InventoryBatchCreate
from schemas.medicine import MedicineCreate
from utils.auth_utils import get_current_user
from utils.context import ClinicContext

TENANT_ID = "clinic-a"
PHARMACIST = {"sub": "u-1", "email": "pharmacist@clinic.test", "groups": ["pharmacist"]}


@pytest.fixture(autouse=True)
def reset_database():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def context():
    return ClinicContext(user=dict(PHARMACIST), tenant_id=TENANT_ID)


@pytest.fixture
def current_user():
    """The claims the API sees for the request; tests may change groups in place."""
    return dict(PHARMACIST)


@pytest.fixture
def client(current_user):
    app.dependency_overrides[get_current_user] = lambda: current_user
    with TestClient(app, headers={"X-Tenant-ID": TENANT_ID}) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_medicine(db, context, **overrides):
    data = {"name": "Paracetamol 500mg", "sku": "PARA-500", "unit": "tablet", "sell_price": 1500}
    data.update(overrides)
    return crud_medicine.create_medicine(db, MedicineCreate(**data), context)


def receive(db, context, medicine_id, quantity, expiry_date, batch_number=None, import_date=date(2023, 1, 1)):
    batch = InventoryBatchCreate(
        medicine_id=medicine_id,
        batch_number=batch_number or f"LOT-{expiry_date.isoformat()}",
        expiry_date=expiry_date,
        import_date=import_date,
        cost_price=1000,
        original_quantity=quantity,
    )
    return crud_inventory_batches.receive_batch(db, batch, context)

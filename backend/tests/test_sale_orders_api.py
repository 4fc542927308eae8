from datetime import date

from conftest import make_medicine, receive
from crud import inventory_batches as crud_inventory_batches
from database import SessionLocal
from models.inventory_batches import InventoryBatch
from models.sale_orders import SaleOrder


def _stocked_medicine(db, context):
    medicine = make_medicine(db, context)
    late = receive(db, context, medicine.id, 10, date(2030, 6, 1))
    early = receive(db, context, medicine.id, 5, date(2030, 1, 1))
    return medicine, early, late


def _checkout(client, medicine_id, quantity, unit_price=2000, **extra):
    body = {"items": [{"medicine_id": medicine_id, "quantity": quantity, "unit_price": unit_price}]}
    body.update(extra)
    return client.post("/sale-orders/", json=body)


def test_checkout_returns_the_created_order(client, db, context):
    medicine, early, late = _stocked_medicine(db, context)

    response = _checkout(client, medicine.id, 7, patient_name="Tran Thi B", sale_source="clinic")

    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "completed"
    assert order["sale_source"] == "clinic"
    assert order["total_amount"] == 14000
    assert [(i["batch_id"], i["quantity"]) for i in order["items"]] == [(early.id, 5), (late.id, 2)]


def test_checkout_with_too_little_stock_is_a_bad_request(client, db, context):
    medicine, _, _ = _stocked_medicine(db, context)

    response = _checkout(client, medicine.id, 20)

    assert response.status_code == 400
    assert "Available: 15, Requested: 20" in response.json()["detail"]


def test_checkout_of_unknown_medicine_is_a_bad_request(client):
    response = _checkout(client, 12345, 1)

    assert response.status_code == 400
    assert "12345" in response.json()["detail"]


def test_checkout_validates_the_cart(client, db, context):
    medicine, _, _ = _stocked_medicine(db, context)

    assert client.post("/sale-orders/", json={"items": []}).status_code == 422
    assert _checkout(client, medicine.id, 0).status_code == 422
    assert _checkout(client, medicine.id, 1, unit_price=-1).status_code == 422


def test_receptionist_can_checkout_but_not_cancel(client, db, context, current_user):
    medicine, _, _ = _stocked_medicine(db, context)
    current_user["groups"] = ["receptionist"]

    created = _checkout(client, medicine.id, 1)
    assert created.status_code == 201

    response = client.post(f"/sale-orders/{created.json()['id']}/cancel")
    assert response.status_code == 403


def test_user_without_a_pharmacy_role_cannot_checkout(client, db, context, current_user):
    medicine, _, _ = _stocked_medicine(db, context)
    current_user["groups"] = ["doctor"]

    assert _checkout(client, medicine.id, 1).status_code == 403


def test_missing_tenant_header_is_rejected(client):
    response = client.get("/sale-orders/", headers={"X-Tenant-ID": " "})

    assert response.status_code == 400


def test_cancel_puts_stock_back_on_the_original_batches(client, db, context):
    medicine, early, late = _stocked_medicine(db, context)
    order = _checkout(client, medicine.id, 7).json()

    response = client.post(f"/sale-orders/{order['id']}/cancel", json={"reason": "Patient returned the goods"})

    assert response.status_code == 200
    cancelled = response.json()
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancelled_by"] == "pharmacist@clinic.test"
    assert "Patient returned the goods" in cancelled["notes"]
    db.expire_all()
    assert db.get(InventoryBatch, early.id).current_quantity == 5
    assert db.get(InventoryBatch, late.id).current_quantity == 10

    history = client.get(f"/inventory-batches/{early.id}/audit").json()
    assert [h["change_type"] for h in history] == ["receipt", "sale", "cancellation"]
    assert history[-1]["sale_order_id"] == order["id"]


def test_cancelling_twice_is_a_conflict(client, db, context):
    medicine, _, _ = _stocked_medicine(db, context)
    order = _checkout(client, medicine.id, 2).json()

    assert client.post(f"/sale-orders/{order['id']}/cancel").status_code == 200
    response = client.post(f"/sale-orders/{order['id']}/cancel")

    assert response.status_code == 409
    assert "already cancelled" in response.json()["detail"]


def test_cancel_does_not_overfill_a_recounted_batch(client, db, context):
    medicine = make_medicine(db, context)
    batch = receive(db, context, medicine.id, 10, date(2030, 1, 1))
    order = _checkout(client, medicine.id, 4).json()
    # Stock count found the units were never taken out
    client.post(f"/inventory-batches/{batch.id}/adjust", json={"new_quantity": 9, "reason": "Recount"})

    response = client.post(f"/sale-orders/{order['id']}/cancel")

    assert response.status_code == 200
    db.expire_all()
    assert db.get(InventoryBatch, batch.id).current_quantity == 10


def test_list_and_filter_sale_orders(client, db, context):
    medicine, _, _ = _stocked_medicine(db, context)
    _checkout(client, medicine.id, 1, patient_id="P-1", created_at="2030-01-10T09:00:00")
    _checkout(client, medicine.id, 1, sale_source="online", created_at="2030-01-11T09:00:00")
    cancelled = _checkout(client, medicine.id, 1, created_at="2030-01-11T10:00:00").json()
    client.post(f"/sale-orders/{cancelled['id']}/cancel")

    assert len(client.get("/sale-orders/").json()) == 3
    assert [o["patient_id"] for o in client.get("/sale-orders/", params={"patient_id": "P-1"}).json()] == ["P-1"]
    assert len(client.get("/sale-orders/", params={"sale_source": "online"}).json()) == 1
    assert len(client.get("/sale-orders/", params={"status": "cancelled"}).json()) == 1
    on_the_11th = client.get("/sale-orders/", params={"start_date": "2030-01-11", "end_date": "2030-01-11"}).json()
    assert len(on_the_11th) == 2


def test_read_sale_order(client, db, context):
    medicine, _, _ = _stocked_medicine(db, context)
    order = _checkout(client, medicine.id, 3).json()

    assert client.get(f"/sale-orders/{order['id']}").json()["items"] == order["items"]
    assert client.get("/sale-orders/999").status_code == 404


def test_checkout_that_keeps_losing_races_is_a_conflict(client, db, context, monkeypatch):
    medicine = make_medicine(db, context)
    batch = receive(db, context, medicine.id, 10, date(2030, 1, 1))
    original = crud_inventory_batches.get_active_batches

    def read_then_touch(session, medicine_id, tenant_id):
        batches = original(session, medicine_id, tenant_id)
        # Another writer bumps the batch version after every read
        other = SessionLocal()
        try:
            other.get(InventoryBatch, batch.id).supplier = "Recount"
            other.commit()
        finally:
            other.close()
        return batches

    monkeypatch.setattr(crud_inventory_batches, "get_active_batches", read_then_touch)

    response = _checkout(client, medicine.id, 2)

    assert response.status_code == 409
    assert "Please retry" in response.json()["detail"]
    db.expire_all()
    assert db.get(InventoryBatch, batch.id).current_quantity == 10
    assert db.query(SaleOrder).count() == 0

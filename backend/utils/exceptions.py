"""
Pharmacy domain errors.

crud functions raise these; routers translate them into HTTP responses.
"""


class PharmacyError(Exception):
    """Base class for pharmacy business-rule failures."""


class UnknownMedicine(PharmacyError):
    def __init__(self, medicine_id: int, reason: str = "not found"):
        self.medicine_id = medicine_id
        self.reason = reason
        super().__init__(f"Medicine with ID {medicine_id} {reason}.")


class InsufficientStock(PharmacyError):
    def __init__(self, medicine_id: int, medicine_name: str, requested: int, available: int):
        self.medicine_id = medicine_id
        self.medicine_name = medicine_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for medicine '{medicine_name}'. Available: {available}, Requested: {requested}"
        )


class TransientStorageConflict(PharmacyError):
    """Concurrent writers kept changing the same batches; safe to retry later."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Inventory changed concurrently; gave up after {attempts} attempt(s). Please retry."
        )


class InvalidBatchAdjustment(PharmacyError):
    def __init__(self, batch_id: int, new_quantity: int, original_quantity: int):
        self.batch_id = batch_id
        self.new_quantity = new_quantity
        self.original_quantity = original_quantity
        super().__init__(
            f"Batch {batch_id} cannot hold {new_quantity} units; received quantity was {original_quantity}."
        )


class SaleOrderAlreadyCancelled(PharmacyError):
    def __init__(self, sale_order_id: int):
        self.sale_order_id = sale_order_id
        super().__init__(f"Sale order {sale_order_id} is already cancelled.")


class MedicineInUse(PharmacyError):
    def __init__(self, medicine_id: int):
        self.medicine_id = medicine_id
        super().__init__(
            f"Medicine {medicine_id} has inventory batches or sales and cannot be deleted. Deactivate it instead."
        )

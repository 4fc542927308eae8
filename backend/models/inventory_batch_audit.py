from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base, clinic_now


class InventoryBatchAudit(Base):
    __tablename__ = "inventory_batch_audit"

    id = Column(Integer, primary_key=True, index=True)
    batch_id = Column(Integer, ForeignKey("inventory_batches.id"), nullable=False)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False)
    sale_order_id = Column(Integer, ForeignKey("sale_orders.id"), nullable=True)
    change_type = Column(String, nullable=False)  # "receipt", "sale", "adjustment", "cancellation"
    change_amount = Column(Integer, nullable=False)  # Positive or negative
    old_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    changed_by = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=clinic_now)
    note = Column(String, nullable=True)
    tenant_id = Column(String, index=True)

    batch = relationship("InventoryBatch", back_populates="audits")
    sale_order = relationship("SaleOrder")

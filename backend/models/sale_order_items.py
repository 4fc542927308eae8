from sqlalchemy import Column, Integer, BigInteger, ForeignKey, String
from sqlalchemy.orm import relationship
from database import Base


class SaleOrderItem(Base):
    __tablename__ = "sale_order_items"

    id = Column(Integer, primary_key=True, index=True)
    sale_order_id = Column(Integer, ForeignKey("sale_orders.id"), nullable=False)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False)
    batch_id = Column(Integer, ForeignKey("inventory_batches.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(BigInteger, nullable=False)
    subtotal = Column(BigInteger, nullable=False)
    tenant_id = Column(String, index=True)

    # Relationships
    sale_order = relationship("SaleOrder", back_populates="items")
    medicine = relationship("Medicine")
    batch = relationship("InventoryBatch")

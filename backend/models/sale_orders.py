from sqlalchemy import Column, Integer, BigInteger, String, Text, DateTime, Enum, Index
from sqlalchemy.orm import relationship
from database import Base, clinic_now
import enum


class SaleOrderStatus(enum.Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SaleSource(enum.Enum):
    WALK_IN = "walk_in"
    CLINIC = "clinic"
    ONLINE = "online"


class SaleOrder(Base):
    __tablename__ = "sale_orders"
    __table_args__ = (Index('ix_sale_orders_tenant_created', 'tenant_id', 'created_at'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=clinic_now)
    created_by = Column(String, nullable=True)
    patient_id = Column(String, nullable=True, index=True)  # Set when the sale is linked to a clinic patient
    patient_name = Column(String, nullable=False)
    total_amount = Column(BigInteger, nullable=False, default=0)
    status = Column(Enum(SaleOrderStatus), default=SaleOrderStatus.COMPLETED, nullable=False)
    sale_source = Column(Enum(SaleSource), default=SaleSource.WALK_IN, nullable=False)
    notes = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String, nullable=True)

    # Relationships
    items = relationship("SaleOrderItem", back_populates="sale_order", cascade="all, delete-orphan", order_by="SaleOrderItem.id")

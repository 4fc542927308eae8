from sqlalchemy import Column, Integer, BigInteger, String, Text, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class Medicine(Base, TimestampMixin):
    __tablename__ = "medicines"
    __table_args__ = (UniqueConstraint('sku', 'tenant_id', name='_medicines_sku_tenant_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True)
    name = Column(String, nullable=False, index=True)
    sku = Column(String, nullable=False)
    unit = Column(String, nullable=False)  # e.g., "tablet", "box", "bottle"
    usage = Column(Text, nullable=True)  # Default usage instructions printed on the label
    category = Column(String, nullable=True)  # e.g., "Antibiotic", "Vitamin"
    min_stock_level = Column(Integer, nullable=False, default=10)
    is_active = Column(Boolean, nullable=False, default=True)
    # Prices in the smallest currency unit
    sell_price = Column(BigInteger, nullable=False, default=0)
    cost_price = Column(BigInteger, nullable=False, default=0)
    units_per_blister = Column(Integer, nullable=True)
    blisters_per_box = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    manufacturer = Column(String, nullable=True)

    batches = relationship("InventoryBatch", back_populates="medicine")

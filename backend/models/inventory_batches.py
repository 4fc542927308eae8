from sqlalchemy import Column, Integer, BigInteger, String, Date, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class InventoryBatch(Base, TimestampMixin):
    __tablename__ = "inventory_batches"
    __table_args__ = (
        CheckConstraint('current_quantity >= 0', name='ck_inventory_batches_current_non_negative'),
        CheckConstraint('current_quantity <= original_quantity', name='ck_inventory_batches_current_le_original'),
        Index('ix_inventory_batches_medicine_expiry', 'tenant_id', 'medicine_id', 'expiry_date'),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False)
    batch_number = Column(String, nullable=False)
    expiry_date = Column(Date, nullable=False)
    import_date = Column(Date, nullable=False)
    cost_price = Column(BigInteger, nullable=False, default=0)
    original_quantity = Column(Integer, nullable=False)
    current_quantity = Column(Integer, nullable=False)
    supplier = Column(String, nullable=True)
    # Bumped on every UPDATE; a stale version makes the flush raise StaleDataError
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    medicine = relationship("Medicine", back_populates="batches")
    audits = relationship("InventoryBatchAudit", back_populates="batch")

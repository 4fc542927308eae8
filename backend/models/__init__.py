from models.audit_log import AuditLog
from models.medicine import Medicine
from models.inventory_batches import InventoryBatch
from models.inventory_batch_audit import InventoryBatchAudit
from models.sale_orders import SaleOrder, SaleOrderStatus, SaleSource
from models.sale_order_items import SaleOrderItem

__all__ = ['AuditLog', 'InventoryBatch', 'InventoryBatchAudit', 'Medicine', 'SaleOrder', 'SaleOrderItem', 'SaleOrderStatus', 'SaleSource',]

from .catalog import Product, PaymentMethod
from .inventory import Inventory, InventoryMovement
from .numbering import NumberingRule
from .orders import Order, OrderItem, Payment
from .customers import Customer, PointsLog
from .audit import AuditLog

__all__ = [
    'Product', 'PaymentMethod',
    'Inventory', 'InventoryMovement',
    'NumberingRule',
    'Order', 'OrderItem', 'Payment',
    'Customer', 'PointsLog',
    'AuditLog',
]

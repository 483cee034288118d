from .auth import Profile, Role, Permission, RolePermission
from .catalog import ProductType, Product, Price
from .items import Item, ItemStatus, Location
from .orders import Order, OrderItem, OrderStatus, RefundRequest, RefundStatus
from .ledger import LedgerEntry, TransactionType

__all__ = [
    'Profile', 'Role', 'Permission', 'RolePermission',
    'ProductType', 'Product', 'Price',
    'Item', 'ItemStatus', 'Location',
    'Order', 'OrderItem', 'OrderStatus', 'RefundRequest', 'RefundStatus',
    'LedgerEntry', 'TransactionType',
]

from .tenancy import Store
from .catalog import Category, Product, ProductVariant
from .inventory import Warehouse, Inventory, InventoryAdjustment
from .customers import Customer, CustomerAddress
from .orders import Order, OrderItem, Payment
from .marketplaces import StoreMarketplace, PlatformOrder
from .returns import ProductReturn, ProductReturnItem
from .buys import Transaction, TransactionItem

__all__ = [
    'Store',
    'Category', 'Product', 'ProductVariant',
    'Warehouse', 'Inventory', 'InventoryAdjustment',
    'Customer', 'CustomerAddress',
    'Order', 'OrderItem', 'Payment',
    'StoreMarketplace', 'PlatformOrder',
    'ProductReturn', 'ProductReturnItem',
    'Transaction', 'TransactionItem',
]

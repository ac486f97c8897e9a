from .products import Product, InventoryRecord
from .inventory import StockMovement, DailyTransfer
from .sales import Sale, SaleItem, PendingBill
from .finance import Spending, CounterBalance
from .documents import DocumentSequence

__all__ = [
    'Product', 'InventoryRecord',
    'StockMovement', 'DailyTransfer',
    'Sale', 'SaleItem', 'PendingBill',
    'Spending', 'CounterBalance',
    'DocumentSequence',
]

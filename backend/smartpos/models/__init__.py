from .tenancy import Shop
from .inventory import Product, StockMovement
from .sales import Sale, SaleItem
from .customers import Customer
from .registers import Shift
from .documents import FullTaxInvoice, DocumentSequence
from .settings import Settings

__all__ = [
    'Shop',
    'Product', 'StockMovement',
    'Sale', 'SaleItem',
    'Customer',
    'Shift',
    'FullTaxInvoice', 'DocumentSequence',
    'Settings',
]

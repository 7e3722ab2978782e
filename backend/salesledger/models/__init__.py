from .auth import User, SessionToken, ROLES
from .inventory import Product, PricingHistoryEntry, StockHistory, STANDARD_UNITS
from .sales import Sale, SaleItem, PAYMENT_METHODS

__all__ = [
    'User', 'SessionToken', 'ROLES',
    'Product', 'PricingHistoryEntry', 'StockHistory', 'STANDARD_UNITS',
    'Sale', 'SaleItem', 'PAYMENT_METHODS',
]

from .catalog import Category, Product, Supplier, Customer
from .auth import User, SessionToken, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER
from .sales import Sale, SaleItem, SaleReturn, ReturnItem
from .purchases import (
    Purchase,
    PurchaseItem,
    PURCHASE_STATUSES,
    STATUS_PENDING,
    STATUS_RECEIVED,
    STATUS_CANCELLED,
)
from .settings import AppSetting

__all__ = [
    'Category', 'Product', 'Supplier', 'Customer',
    'User', 'SessionToken',
    'ROLES', 'ROLE_ADMIN', 'ROLE_MANAGER', 'ROLE_CASHIER',
    'Sale', 'SaleItem', 'SaleReturn', 'ReturnItem',
    'Purchase', 'PurchaseItem',
    'PURCHASE_STATUSES', 'STATUS_PENDING', 'STATUS_RECEIVED', 'STATUS_CANCELLED',
    'AppSetting',
]

from .auth import User, SessionToken, ROLE_ADMIN, ROLE_EMPLOYEE, ROLES
from .customers import Customer
from .inventory import ProductCategory, Product, Service
from .promotions import Promotion
from .sales import (
    Sale,
    SaleItem,
    SALE_STATUSES,
    COUNTED_STATUSES,
    STATUS_PAID,
    STATUS_UNPAID,
    STATUS_TRANSFER,
)

__all__ = [
    'User', 'SessionToken', 'ROLE_ADMIN', 'ROLE_EMPLOYEE', 'ROLES',
    'Customer',
    'ProductCategory', 'Product', 'Service',
    'Promotion',
    'Sale', 'SaleItem',
    'SALE_STATUSES', 'COUNTED_STATUSES', 'STATUS_PAID', 'STATUS_UNPAID', 'STATUS_TRANSFER',
]

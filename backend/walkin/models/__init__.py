from .customers import Customer
from .catalog import Category, Service, Staff, StaffAssignment
from .queue import WalkIn, WalkInStatus, ACTIVE_STATUSES
from .inventory import Product, ProductSale

__all__ = [
    'Customer',
    'Category', 'Service', 'Staff', 'StaffAssignment',
    'WalkIn', 'WalkInStatus', 'ACTIVE_STATUSES',
    'Product', 'ProductSale',
]

from .catalog import Product, PaymentType
from .sales import Sale, SaleItem

__all__ = [
    'Product', 'PaymentType',
    'Sale', 'SaleItem',
]

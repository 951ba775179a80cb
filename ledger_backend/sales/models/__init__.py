# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS
"""

from .activity import Activity
from .customer import Customer
from .invoice import Invoice, InvoiceItem
from .receipt import CustomerReceipt

__all__ = [
    "Customer",
    "Invoice",
    "InvoiceItem",
    "CustomerReceipt",
    "Activity",
]

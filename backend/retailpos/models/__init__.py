from .tenancy import Company
from .employees import Employee
from .inventory import Category, Vendor, Item, ReturnPolicy
from .customers import Customer, LoyaltyConfig
from .registers import Shift
from .sales import Transaction, TransactionLine
from .tenders import StoreCredit, GiftCard, GiftCardUsage

__all__ = [
    'Company',
    'Employee',
    'Category', 'Vendor', 'Item', 'ReturnPolicy',
    'Customer', 'LoyaltyConfig',
    'Shift',
    'Transaction', 'TransactionLine',
    'StoreCredit', 'GiftCard', 'GiftCardUsage',
]

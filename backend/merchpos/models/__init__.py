from .auth import User, SessionToken
from .inventory import Supplier, InventoryItem, InventoryTransaction
from .sales import Sale
from .catalog import Category, LabelTemplate, MediaFile

__all__ = [
    'User', 'SessionToken',
    'Supplier', 'InventoryItem', 'InventoryTransaction',
    'Sale',
    'Category', 'LabelTemplate', 'MediaFile',
]

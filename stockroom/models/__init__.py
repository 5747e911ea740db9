from stockroom.models.user import User
from stockroom.models.product import Product
from stockroom.models.inventory import InventoryEntry

__all__ = ["User", "Product", "InventoryEntry"]

# inventory_app/models/__init__.py
from .user import *                # User
from .product import *             # Product
from .order import *               # Order, OrderItem
from .inventory_history import *   # InventoryHistory

from bizops.models.user import User
from bizops.models.client import Client
from bizops.models.product import Product
from bizops.models.order import Order, OrderItem

__all__ = ["User", "Client", "Product", "Order", "OrderItem"]

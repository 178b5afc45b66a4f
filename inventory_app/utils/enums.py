from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class HistoryAction(str, Enum):
    ADD = "ADD"
    UPDATE = "UPDATE"
    ORDER = "ORDER"

from enum import Enum


class OrderStatus(Enum):
    PENDING = "pending"          # Created, waiting for payment / fulfillment
    PROCESSING = "processing"    # Paid, being prepared
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

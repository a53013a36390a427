#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from orderflow.data.models.order import OrderModel
from orderflow.data.models.order_item import OrderItemModel

__all__ = ["OrderModel", "OrderItemModel"]

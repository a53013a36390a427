from sqlalchemy import Column, Integer, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from orderflow.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    menu_item_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=True)
    quantity = Column(Integer, nullable=False)
    #cena z katalogu w chwili zlozenia zamowienia, nigdy nie odswiezana
    unit_price = Column(Numeric(10, 2), nullable=False)
    special_instructions = Column(String(500), nullable=True)

    order = relationship("OrderModel", back_populates="items")

    @property
    def line_total(self):
        return self.unit_price * self.quantity

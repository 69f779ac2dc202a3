from sqlalchemy import Column, String, Integer
from chat_relay.database.sql import Base
from chat_relay.models._ids import generate_id


class StoreItem(Base):
    """Purchasable cosmetic; only the avatar image is read by the relay."""
    __tablename__ = "store_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    image_url = Column(String(500), nullable=False)
    price = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<StoreItem(id={self.id}, name={self.name})>"

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text
from sqlalchemy.sql import func
from bizops.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    category = Column(String(128), nullable=True)
    external_id = Column(String(64), unique=True, nullable=True, index=True)  # SKU typed by sellers
    stock = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    source = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

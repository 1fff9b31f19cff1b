from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from catalog.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    image_url = Column(String(500))

    # Pricing
    price = Column(Numeric(10, 2), nullable=False, index=True)
    old_price = Column(Numeric(10, 2))
    discount = Column(Integer, default=0, index=True)  # Percent off old_price

    # Filter attributes
    gender = Column(String(10), index=True)  # 'men', 'women', 'boy', 'girl'
    occasion = Column(String(255))  # Comma-delimited, e.g. 'casual,party'
    brands = Column(String(255))  # Comma-delimited brand ids, e.g. '1,4'
    colors = Column(String(255))

    rating = Column(Float, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    product_categories = relationship("ProductCategory", back_populates="product")
    reviews = relationship("Review", back_populates="product")
    comments = relationship("Comment", back_populates="product")

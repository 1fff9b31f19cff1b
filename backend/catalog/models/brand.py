from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from catalog.database import Base


class Brand(Base):
    __tablename__ = "brands"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    website = Column(Text)
    logo_url = Column(String(500))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Products reference brands through the denormalized products.brands
    # column, so there is no relationship() here.

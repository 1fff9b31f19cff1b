from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from catalog.database import Base


class ProductCategory(Base):
    """Association between a product and one of its categories."""
    __tablename__ = "product_categories"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)

    # Relationships
    product = relationship("Product", back_populates="product_categories")
    category = relationship("Category", back_populates="product_categories")

    __table_args__ = (
        UniqueConstraint('product_id', 'category_id', name='uq_product_category'),
    )

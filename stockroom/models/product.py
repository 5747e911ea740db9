# stockroom/models/product.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from stockroom.database import Base

# Columns a caller may set; id/created_at belong to the store
PRODUCT_FIELDS = ("code", "name", "category", "brand", "unit", "owner_id")


class Product(Base):
    """
    A catalogue entry owned by one user.
    (code, owner_id) is unique: two owners may each hold the same code.
    """
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("code", "owner_id", name="uq_products_code_owner"),
    )

    id = Column(Integer, primary_key=True)
    code = Column(String, nullable=False, index=True)
    name = Column(String)
    category = Column(String)
    brand = Column(String)
    unit = Column(String)
    owner_id = Column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Product(id={self.id}, code='{self.code}', owner_id='{self.owner_id}')>"

# stockroom/models/inventory.py
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from stockroom.database import Base


class InventoryEntry(Base):
    """
    A counted quantity of a product at a location.

    Rows are created by explicit insert and changed only by explicit update.
    Every write to this table is relayed to realtime clients by the
    notify_inventory_change trigger (see alembic/versions/001).
    """
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True)
    code = Column(String, nullable=False, index=True)
    name = Column(String, nullable=True)
    quantity = Column(Numeric(14, 3), nullable=False, default=0)
    location = Column(String, nullable=True)
    owner_id = Column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    last_modified = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self):
        return f"<InventoryEntry(id={self.id}, code='{self.code}', quantity={self.quantity})>"

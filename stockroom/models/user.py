# stockroom/models/user.py
from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from stockroom.database import Base


class User(Base):
    """
    Profile row for an account held by the identity service.
    The id is the identity service's user id; credentials never live here.
    """
    __tablename__ = "users"

    id = Column(UUID(as_uuid=False), primary_key=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}')>"

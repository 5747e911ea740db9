"""
Schemas for inventory entries.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class InventoryBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    code: str = Field(min_length=1, validation_alias=AliasChoices("code", "codigo"))
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "nombre"))
    quantity: Decimal = Field(ge=0, validation_alias=AliasChoices("quantity", "cantidad"))
    location: Optional[str] = Field(default=None, validation_alias=AliasChoices("location", "ubicacion"))


class InventoryCreate(InventoryBase):
    pass


class InventoryUpdate(BaseModel):
    """Partial update; unset fields are left untouched."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "nombre"))
    quantity: Optional[Decimal] = Field(default=None, ge=0, validation_alias=AliasChoices("quantity", "cantidad"))
    location: Optional[str] = Field(default=None, validation_alias=AliasChoices("location", "ubicacion"))


class InventoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: Optional[str] = None
    quantity: Decimal
    location: Optional[str] = None
    owner_id: str
    last_modified: datetime

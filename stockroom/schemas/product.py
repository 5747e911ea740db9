"""
Schemas for product endpoints and reconciliation.

Field names accept the Spanish aliases (codigo, nombre, categoria, marca,
unidad) sent by the existing front-end.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from stockroom.core.enums import ReconcileMode


class ProductFieldsMixin(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    @field_validator('name', 'category', 'brand', 'unit', mode='before', check_fields=False)
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ProductSyncItem(ProductFieldsMixin):
    """One entry of a reconciliation payload. Only `code` is required."""
    code: str = Field(min_length=1, validation_alias=AliasChoices("code", "codigo"))
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "nombre"))
    category: Optional[str] = Field(default=None, validation_alias=AliasChoices("category", "categoria"))
    brand: Optional[str] = Field(default=None, validation_alias=AliasChoices("brand", "marca"))
    unit: Optional[str] = Field(default=None, validation_alias=AliasChoices("unit", "unidad"))


class ProductCreate(ProductFieldsMixin):
    code: str = Field(min_length=1, validation_alias=AliasChoices("code", "codigo"))
    name: str = Field(min_length=1, validation_alias=AliasChoices("name", "nombre"))
    category: str = Field(min_length=1, validation_alias=AliasChoices("category", "categoria"))
    brand: str = Field(min_length=1, validation_alias=AliasChoices("brand", "marca"))
    unit: str = Field(min_length=1, validation_alias=AliasChoices("unit", "unidad"))


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    unit: Optional[str] = None
    owner_id: str
    created_at: Optional[datetime] = None


class ReconcileRequest(BaseModel):
    products: List[ProductSyncItem] = Field(default_factory=list)


class ReconcileResponse(BaseModel):
    success: bool = True
    mode: ReconcileMode
    deleted: int
    inserted: int
    data: List[Dict[str, Any]]

from typing import Optional
from pydantic import BaseModel
from decimal import Decimal
from datetime import datetime


class PackageBase(BaseModel):
    name: str
    description: Optional[str] = None
    price: Decimal
    # Porcentajes de reparto por defecto (deben sumar 100)
    percentage_a: Decimal
    percentage_b: Decimal
    percentage_c: Decimal


class PackageCreate(PackageBase):
    pass


class PackageUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    percentage_a: Optional[Decimal] = None
    percentage_b: Optional[Decimal] = None
    percentage_c: Optional[Decimal] = None


class PackageRead(PackageBase):
    id: int
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

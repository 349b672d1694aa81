# schemas/registers.py
from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from studio_ledger.models.registers import MovementKind, RegisterType


class CashRegisterRead(BaseModel):
    id: int
    name: str
    register_type: RegisterType
    opening_balance: Decimal
    balance: Decimal

    class Config:
        from_attributes = True


class CashMovementRead(BaseModel):
    id: int
    register_id: int
    kind: MovementKind
    concept: str
    amount: Decimal
    balance_before: Decimal  # Saldo antes del movimiento
    balance_after: Decimal   # Saldo después del movimiento
    session_id: Optional[int] = None
    reverses_id: Optional[int] = None
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MovementPage(BaseModel):
    items: List[CashMovementRead]
    total: int
    limit: int
    offset: int


class RegisterAuditRead(BaseModel):
    register_id: int
    register_name: str
    opening_balance: Decimal
    balance: Decimal
    replayed_balance: Decimal
    movement_count: int
    broken_links: List[int] = []
    consistent: bool

    class Config:
        from_attributes = True

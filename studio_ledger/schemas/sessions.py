# schemas/sessions.py
from pydantic import BaseModel
from typing import List, Optional
from enum import Enum
from decimal import Decimal
from datetime import date, time, datetime

from studio_ledger.models.sessions import SessionStatus
from studio_ledger.schemas.packages import PackageRead


class SettlementDestination(str, Enum):
    BANK = "bank"
    CASH = "cash"


# --- Creación / Edición ---

class SessionCreate(BaseModel):
    session_date: date
    start_time: time
    end_time: time
    client_name: str
    client_phone: Optional[str] = None
    package_id: int
    specifications: Optional[str] = None
    comment: Optional[str] = None

    advance: Decimal = Decimal("0.00")         # Anticipo (va a la caja bancaria)
    savings_amount: Decimal = Decimal("0.00")  # Destinado a la caja de ahorro


class SessionUpdate(BaseModel):
    # Campos generales
    session_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    specifications: Optional[str] = None
    comment: Optional[str] = None
    edited: Optional[bool] = None
    delivered: Optional[bool] = None

    # Campos financieros
    package_id: Optional[int] = None
    advance: Optional[Decimal] = None
    savings_amount: Optional[Decimal] = None
    remaining: Optional[Decimal] = None  # Solo se respeta si no cambia anticipo ni paquete


class SettlementCreate(BaseModel):
    amount: Decimal
    destination: SettlementDestination


class ConceptAmountCreate(BaseModel):
    concept: str
    amount: Decimal


class DistributionUpdate(BaseModel):
    percentage_a: Decimal
    percentage_b: Decimal
    percentage_c: Decimal


# --- Lectura ---

class SettlementRead(BaseModel):
    id: int
    session_id: int
    amount: Decimal
    destination_register_id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConceptAmountRead(BaseModel):
    id: int
    session_id: int
    concept: str
    amount: Decimal
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DistributionRead(BaseModel):
    session_id: int
    percentage_a: Decimal
    percentage_b: Decimal
    percentage_c: Decimal
    amount_a: Decimal
    amount_b: Decimal
    amount_c: Decimal
    income_total: Decimal
    expense_total: Decimal
    net: Decimal
    is_active: bool

    class Config:
        from_attributes = True


class SessionRead(BaseModel):
    id: int
    session_date: date
    start_time: time
    end_time: time
    client_name: str
    client_phone: Optional[str] = None
    package_id: int
    specifications: Optional[str] = None
    comment: Optional[str] = None
    edited: bool = False
    delivered: bool = False

    advance: Decimal
    remaining: Decimal
    savings_amount: Decimal
    status: SessionStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SessionDetail(SessionRead):
    package: Optional[PackageRead] = None
    distribution: Optional[DistributionRead] = None
    settlements: List[SettlementRead] = []
    extra_incomes: List[ConceptAmountRead] = []
    expenses: List[ConceptAmountRead] = []


class SessionPage(BaseModel):
    items: List[SessionRead]
    total: int
    limit: int
    offset: int


# --- Reporte de reparto ---

class BeneficiaryShare(BaseModel):
    name: str
    amount: Decimal


class DistributionReport(BaseModel):
    date_from: date
    date_to: date
    session_count: int
    total_net: Decimal
    total_advances: Decimal
    total_savings: Decimal
    total_expenses: Decimal
    total_incomes: Decimal
    beneficiaries: List[BeneficiaryShare]
    sessions: List[SessionRead] = []

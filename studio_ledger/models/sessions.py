# studio_ledger/models/sessions.py
import enum
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, Time, DateTime, Numeric, ForeignKey, Enum, Text
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from studio_ledger.database import Base


class SessionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    REVERSED = "REVERSED"  # Eliminada: movimientos compensados, hijos inactivos


# --- Sesión (cita agendada) ---
class StudioSession(Base):
    __tablename__ = "studio_sessions"

    id = Column(Integer, primary_key=True, index=True)

    session_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    client_name = Column(String, nullable=False, index=True)
    client_phone = Column(String, nullable=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False)

    specifications = Column(Text, nullable=True)
    comment = Column(Text, nullable=True)
    edited = Column(Boolean, default=False, nullable=False)     # Material editado
    delivered = Column(Boolean, default=False, nullable=False)  # Material entregado

    # Montos
    advance = Column(Numeric(12, 2), nullable=False, default=0)         # Anticipo
    remaining = Column(Numeric(12, 2), nullable=False, default=0)       # Restante = precio - anticipo
    savings_amount = Column(Numeric(12, 2), nullable=False, default=0)  # Destinado a caja de ahorro

    # Solo services/sessions.delete_session la pasa a REVERSED
    status = Column(Enum(SessionStatus), default=SessionStatus.ACTIVE, nullable=False)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    package = relationship("Package")
    created_by = relationship("User")
    settlements = relationship("Settlement", back_populates="session", order_by="Settlement.id")
    extra_incomes = relationship("ExtraIncome", back_populates="session", order_by="ExtraIncome.id")
    expenses = relationship("Expense", back_populates="session", order_by="Expense.id")
    movements = relationship("CashMovement", back_populates="session", order_by="CashMovement.id")
    distribution = relationship("Distribution", back_populates="session", uselist=False)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE


# --- Liquidación (pago posterior al anticipo) ---
class Settlement(Base):
    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("studio_sessions.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    destination_register_id = Column(Integer, ForeignKey("cash_registers.id"), nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    session = relationship("StudioSession", back_populates="settlements")
    destination_register = relationship("CashRegister")


class ExtraIncome(Base):
    __tablename__ = "extra_incomes"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("studio_sessions.id"), nullable=False, index=True)
    concept = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    session = relationship("StudioSession", back_populates="extra_incomes")


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("studio_sessions.id"), nullable=False, index=True)
    concept = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    session = relationship("StudioSession", back_populates="expenses")


# --- Reparto del neto entre los tres beneficiarios ---
class Distribution(Base):
    """
    Una por sesión. amount_a + amount_b + amount_c == net al centavo;
    el tercer monto absorbe el residuo del redondeo.
    """
    __tablename__ = "distributions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("studio_sessions.id"), nullable=False, unique=True)

    percentage_a = Column(Numeric(5, 2), nullable=False)
    percentage_b = Column(Numeric(5, 2), nullable=False)
    percentage_c = Column(Numeric(5, 2), nullable=False)

    amount_a = Column(Numeric(12, 2), nullable=False, default=0)
    amount_b = Column(Numeric(12, 2), nullable=False, default=0)
    amount_c = Column(Numeric(12, 2), nullable=False, default=0)

    # Totales cacheados con los que se calculó el reparto
    income_total = Column(Numeric(12, 2), nullable=False, default=0)
    expense_total = Column(Numeric(12, 2), nullable=False, default=0)
    net = Column(Numeric(12, 2), nullable=False, default=0)

    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    session = relationship("StudioSession", back_populates="distribution")

    @property
    def percentages(self):
        return (self.percentage_a, self.percentage_b, self.percentage_c)

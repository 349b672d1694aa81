# studio_ledger/models/registers.py
import enum
from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, Enum, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from studio_ledger.database import Base


class RegisterType(str, enum.Enum):
    BANK = "BANK"        # Cuenta bancaria (BBVA)
    CASH = "CASH"        # Efectivo
    SAVINGS = "SAVINGS"  # Caja de ahorro del estudio


class MovementKind(str, enum.Enum):
    CREDIT = "CREDIT"  # Ingreso
    DEBIT = "DEBIT"    # Retiro

    @property
    def opposite(self) -> "MovementKind":
        return MovementKind.DEBIT if self is MovementKind.CREDIT else MovementKind.CREDIT


class CashRegister(Base):
    """
    Caja con saldo vivo. `balance` solo lo modifica el libro de cajas
    (services/ledger.py) y siempre coincide con su historial de movimientos.
    """
    __tablename__ = "cash_registers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)   # Nombre visible: "BBVA", "Efectivo", "Caja"
    register_type = Column(Enum(RegisterType), nullable=False, index=True)

    opening_balance = Column(Numeric(12, 2), nullable=False, default=0)  # Saldo antes del primer movimiento
    balance = Column(Numeric(12, 2), nullable=False, default=0)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    movements = relationship("CashMovement", back_populates="register", order_by="CashMovement.id")


class CashMovement(Base):
    """
    Movimiento inmutable; solo `is_active` cambia (reverso lógico).
    balance_before / balance_after son fotos tomadas al crearlo.
    """
    __tablename__ = "cash_movements"

    id = Column(Integer, primary_key=True, index=True)
    register_id = Column(Integer, ForeignKey("cash_registers.id"), nullable=False, index=True)

    kind = Column(Enum(MovementKind), nullable=False)
    concept = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    balance_before = Column(Numeric(12, 2), nullable=False)
    balance_after = Column(Numeric(12, 2), nullable=False)

    session_id = Column(Integer, ForeignKey("studio_sessions.id"), nullable=True, index=True)
    reverses_id = Column(Integer, ForeignKey("cash_movements.id"), nullable=True)  # Movimiento que compensa
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    register = relationship("CashRegister", back_populates="movements")
    session = relationship("StudioSession", back_populates="movements")
    created_by = relationship("User")
    reverses = relationship("CashMovement", remote_side=[id])

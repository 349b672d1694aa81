# studio_ledger/models/__init__.py

# 1. Base de datos (Origen de la clase declarativa)
from studio_ledger.database import Base

# 2. Usuarios
from .users import User, Role

# 3. Cajas y movimientos
from .registers import CashRegister, CashMovement, RegisterType, MovementKind

# 4. Paquetes
from .packages import Package

# 5. Sesiones y su sub-libro
from .sessions import (
    StudioSession,
    SessionStatus,
    Settlement,
    ExtraIncome,
    Expense,
    Distribution,
)

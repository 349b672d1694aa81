# studio_ledger/routers/registers.py
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from studio_ledger.database import get_db
from studio_ledger.services import ledger
from studio_ledger.schemas.registers import CashRegisterRead, MovementPage, RegisterAuditRead
from studio_ledger.security import get_current_user, User

router = APIRouter()


@router.get("/", response_model=List[CashRegisterRead])
def read_registers(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Cajas activas con su saldo actual."""
    return ledger.list_registers(db)


@router.get("/{register_id}/movements", response_model=MovementPage)
def read_movements(
    register_id: int,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    # Solo movimientos activos, del más reciente al más antiguo
    items, total = ledger.list_movements(db, register_id, limit=limit, offset=offset)
    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.get("/{register_id}/audit", response_model=RegisterAuditRead)
def audit_register(
    register_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    # RegisterAudit es dataclass: se valida por atributos para incluir `consistent`
    audit = ledger.audit_register(db, register_id)
    return RegisterAuditRead.model_validate(audit)

# studio_ledger/routers/sessions.py
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from studio_ledger.database import get_db
from studio_ledger.services import sessions as session_service
from studio_ledger.services.distribution import distribution_report
from studio_ledger.schemas.sessions import (
    ConceptAmountCreate, ConceptAmountRead, DistributionRead, DistributionReport,
    DistributionUpdate, SessionCreate, SessionDetail, SessionPage, SessionRead,
    SessionUpdate, SettlementCreate, SettlementRead,
)
from studio_ledger.security import get_current_user, User

router = APIRouter()

# Nota: el id del usuario se toma ANTES de llamar al servicio; la unidad de
# trabajo cierra la transacción de lectura en la que se cargó current_user.


# --- CONSULTAS ---

@router.get("/", response_model=SessionPage)
def read_sessions(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session_date: Optional[date] = None,
    client_name: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    items, total = session_service.list_sessions(
        db, limit=limit, offset=offset, session_date=session_date, client_name=client_name
    )
    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.get("/upcoming", response_model=List[SessionRead])
def read_upcoming_sessions(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return session_service.upcoming_sessions(db, limit=limit)


@router.get("/reports/distribution", response_model=DistributionReport)
def read_distribution_report(
    date_from: date,
    date_to: date,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Acumulado del reparto entre los beneficiarios en un rango de fechas."""
    return distribution_report(db, date_from, date_to)


@router.get("/{session_id}", response_model=SessionDetail)
def read_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return session_service.get_session_detail(db, session_id)


# --- ESCRITURAS ---

@router.post("/", response_model=SessionDetail, status_code=201)
def create_session(
    session_in: SessionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    actor_id = current_user.id
    session = session_service.create_session(db, session_in, actor_id)
    return session_service.get_session_detail(db, session.id)


@router.put("/{session_id}", response_model=SessionDetail)
def update_session(
    session_id: int,
    session_in: SessionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    actor_id = current_user.id
    session_service.update_session(db, session_id, session_in, actor_id)
    return session_service.get_session_detail(db, session_id)


@router.delete("/{session_id}", response_model=SessionRead)
def delete_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Revierte todos los movimientos de la sesión y la marca como REVERSED."""
    actor_id = current_user.id
    return session_service.delete_session(db, session_id, actor_id)


@router.post("/{session_id}/settlements", response_model=SettlementRead, status_code=201)
def add_settlement(
    session_id: int,
    settlement_in: SettlementCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    actor_id = current_user.id
    return session_service.add_settlement(
        db, session_id, settlement_in.amount, settlement_in.destination, actor_id
    )


@router.post("/{session_id}/extra-incomes", response_model=ConceptAmountRead, status_code=201)
def add_extra_income(
    session_id: int,
    line_in: ConceptAmountCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    actor_id = current_user.id
    return session_service.add_extra_income(db, session_id, line_in.concept, line_in.amount, actor_id)


@router.post("/{session_id}/expenses", response_model=ConceptAmountRead, status_code=201)
def add_expense(
    session_id: int,
    line_in: ConceptAmountCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    actor_id = current_user.id
    return session_service.add_expense(db, session_id, line_in.concept, line_in.amount, actor_id)


@router.put("/{session_id}/distribution", response_model=DistributionRead)
def update_distribution(
    session_id: int,
    distribution_in: DistributionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return session_service.set_distribution_percentages(
        db,
        session_id,
        distribution_in.percentage_a,
        distribution_in.percentage_b,
        distribution_in.percentage_c,
    )

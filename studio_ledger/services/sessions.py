# studio_ledger/services/sessions.py
"""
Orquestador financiero de sesiones.

Cada evento de negocio (crear, editar, liquidar, ingreso extra, gasto,
cambiar porcentajes, eliminar) se valida ANTES de escribir y luego corre en
una sola unidad de trabajo: o se aplica completo o no se aplica nada.

Orden de locks dentro de una operación: primero la sesión, después las
cajas en orden ascendente de id.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from studio_ledger.database import unit_of_work
from studio_ledger.errors import InvalidInput, NotFound
from studio_ledger.models import (
    CashMovement, Distribution, Expense, ExtraIncome, MovementKind, Package,
    RegisterType, SessionStatus, Settlement, StudioSession,
)
from studio_ledger.schemas.sessions import SessionCreate, SessionUpdate, SettlementDestination
from studio_ledger.services import distribution as distribution_service
from studio_ledger.services import ledger
from studio_ledger.utils.money import (
    is_valid_time_range, require_amount, require_percentages,
    require_positive_amount, require_signed_amount, round_money,
)

logger = logging.getLogger(__name__)

GENERAL_FIELDS = (
    "session_date", "start_time", "end_time", "client_name", "client_phone",
    "specifications", "comment", "edited", "delivered",
)

_DESTINATION_TYPES = {
    SettlementDestination.BANK: RegisterType.BANK,
    SettlementDestination.CASH: RegisterType.CASH,
}


# -----------------------------
# Helpers
# -----------------------------
def _get_active_session(db: Session, session_id: int, lock: bool = False) -> StudioSession:
    query = db.query(StudioSession).filter(StudioSession.id == session_id)
    if lock:
        query = query.with_for_update().populate_existing()
    session = query.first()
    if not session or session.status != SessionStatus.ACTIVE:
        raise NotFound("Sesión no encontrada o inactiva")
    return session


def _get_active_package(db: Session, package_id: int) -> Package:
    package = db.query(Package).filter(Package.id == package_id).first()
    if not package or not package.is_active:
        raise NotFound("Paquete no encontrado o inactivo")
    return package


def _stored_percentages(db: Session, session: StudioSession):
    """Porcentajes vigentes de la sesión; si aún no tiene reparto, los del paquete."""
    distribution = db.query(Distribution).filter(Distribution.session_id == session.id).first()
    if distribution is not None:
        return distribution.percentages
    return session.package.percentages


def _clean_client_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidInput("El nombre del cliente es requerido")
    return name


def _warn_negative_remaining(session: StudioSession):
    if session.remaining < 0:
        logger.warning(
            "Sesión #%s con restante negativo (%s): el anticipo supera el precio del paquete",
            session.id, session.remaining,
        )


# -----------------------------
# Crear
# -----------------------------
def create_session(db: Session, data: SessionCreate, actor_id: Optional[int]) -> StudioSession:
    """
    Crea la sesión, registra el anticipo en la caja bancaria y el ahorro en la
    caja de ahorro, y calcula el reparto inicial con los porcentajes del paquete.
    """
    # 1. Validaciones previas (antes de cualquier escritura)
    if not is_valid_time_range(data.start_time, data.end_time):
        raise InvalidInput("La hora final debe ser mayor a la hora inicial")
    client_name = _clean_client_name(data.client_name)
    advance = require_amount(data.advance, "anticipo")
    savings_amount = require_amount(data.savings_amount, "monto de caja")

    with unit_of_work(db):
        # 2. Paquete activo
        package = _get_active_package(db, data.package_id)

        # 3. Cajas necesarias, bloqueadas en orden de id
        bank_register = ledger.get_designated_register(db, RegisterType.BANK) if advance > 0 else None
        savings_register = ledger.get_designated_register(db, RegisterType.SAVINGS) if savings_amount > 0 else None
        ledger.lock_registers(db, [r.id for r in (bank_register, savings_register) if r is not None])

        # 4. Sesión
        session = StudioSession(
            session_date=data.session_date,
            start_time=data.start_time,
            end_time=data.end_time,
            client_name=client_name,
            client_phone=data.client_phone,
            package_id=package.id,
            specifications=data.specifications,
            comment=data.comment,
            advance=advance,
            remaining=round_money(package.price - advance),
            savings_amount=savings_amount,
            status=SessionStatus.ACTIVE,
            created_by_id=actor_id,
        )
        session.package = package
        db.add(session)
        db.flush()  # Para obtener el ID de la sesión

        # 5. Movimientos automáticos
        if bank_register is not None:
            ledger.post_movement(
                db, bank_register.id, MovementKind.CREDIT,
                f"Anticipo de sesión - {client_name}", advance, actor_id, session_id=session.id,
            )
        if savings_register is not None:
            ledger.post_movement(
                db, savings_register.id, MovementKind.CREDIT,
                f"Ahorro de sesión - {client_name}", savings_amount, actor_id, session_id=session.id,
            )

        # 6. Reparto inicial con los porcentajes por defecto del paquete
        distribution_service.upsert_distribution(db, session, package.percentages)
        _warn_negative_remaining(session)

    logger.info("Sesión #%s creada para %s (anticipo %s, ahorro %s)", session.id, client_name, advance, savings_amount)
    return session


# -----------------------------
# Editar
# -----------------------------
def update_session(db: Session, session_id: int, data: SessionUpdate, actor_id: Optional[int]) -> StudioSession:
    """
    Reglas financieras:
    - Cambio de paquete: restante = nuevo precio - anticipo; reparto con los porcentajes del nuevo paquete.
    - Anticipo enviado: restante = precio - anticipo; reparto con los porcentajes guardados.
    - Restante manual: solo si en la misma llamada no se envió anticipo ni cambió el paquete.
    - Cambio de ahorro: reparto recalculado con los porcentajes guardados.
    Los cambios de anticipo/ahorro NO generan movimientos de caja.
    """
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

    # Validaciones previas
    if "client_name" in changes:
        changes["client_name"] = _clean_client_name(changes["client_name"])
    if "advance" in changes:
        changes["advance"] = require_amount(changes["advance"], "anticipo")
    if "savings_amount" in changes:
        changes["savings_amount"] = require_amount(changes["savings_amount"], "monto de caja")
    if "remaining" in changes:
        changes["remaining"] = require_signed_amount(changes["remaining"], "restante")

    with unit_of_work(db):
        session = _get_active_session(db, session_id, lock=True)

        start = changes.get("start_time", session.start_time)
        end = changes.get("end_time", session.end_time)
        if not is_valid_time_range(start, end):
            raise InvalidInput("La hora final debe ser mayor a la hora inicial")

        # 1. Campos generales
        for field in GENERAL_FIELDS:
            if field in changes:
                setattr(session, field, changes[field])

        # 2. Paquete
        package = session.package
        package_changed = "package_id" in changes and changes["package_id"] != session.package_id
        if package_changed:
            package = _get_active_package(db, changes["package_id"])
            session.package_id = package.id
            session.package = package

        # 3. Anticipo y restante
        advance_given = "advance" in changes
        if advance_given:
            session.advance = changes["advance"]

        recompute = False
        if package_changed or advance_given:
            session.remaining = round_money(package.price - session.advance)
            recompute = True
            if "remaining" in changes:
                logger.info("Sesión #%s: restante manual ignorado (cambió anticipo o paquete)", session.id)
        elif "remaining" in changes:
            session.remaining = changes["remaining"]

        # 4. Ahorro
        if "savings_amount" in changes and changes["savings_amount"] != round_money(session.savings_amount):
            session.savings_amount = changes["savings_amount"]
            recompute = True

        # 5. Reparto
        if recompute:
            percentages = package.percentages if package_changed else _stored_percentages(db, session)
            distribution_service.upsert_distribution(db, session, percentages)
        db.flush()
        _warn_negative_remaining(session)

    logger.info("Sesión #%s actualizada por usuario %s: %s", session.id, actor_id, sorted(changes))
    return session


# -----------------------------
# Sub-libro: liquidaciones, ingresos extra, gastos
# -----------------------------
def add_settlement(db: Session, session_id: int, amount, destination, actor_id: Optional[int]) -> Settlement:
    """Liquidación a la caja bancaria o de efectivo; el reparto conserva los porcentajes guardados."""
    amount = require_positive_amount(amount)
    try:
        register_type = _DESTINATION_TYPES[SettlementDestination(destination)]
    except ValueError:
        raise InvalidInput("La caja destino debe ser bank o cash")

    with unit_of_work(db):
        session = _get_active_session(db, session_id, lock=True)
        register = ledger.get_designated_register(db, register_type)

        settlement = Settlement(
            session_id=session.id,
            amount=amount,
            destination_register_id=register.id,
            created_by_id=actor_id,
            is_active=True,
        )
        db.add(settlement)
        db.flush()

        ledger.post_movement(
            db, register.id, MovementKind.CREDIT,
            f"Liquidación de sesión - {session.client_name}", amount, actor_id, session_id=session.id,
        )
        distribution_service.upsert_distribution(db, session, _stored_percentages(db, session))

    logger.info("Liquidación #%s de %s a caja %s (sesión #%s)", settlement.id, amount, register.name, session_id)
    return settlement


def _add_session_line(db: Session, model, session_id: int, concept: str, amount, actor_id: Optional[int]):
    amount = require_positive_amount(amount)
    concept = (concept or "").strip()
    if not concept:
        raise InvalidInput("El concepto es requerido")

    with unit_of_work(db):
        session = _get_active_session(db, session_id, lock=True)
        line = model(
            session_id=session.id,
            concept=concept,
            amount=amount,
            created_by_id=actor_id,
            is_active=True,
        )
        db.add(line)
        db.flush()
        distribution_service.upsert_distribution(db, session, _stored_percentages(db, session))

    logger.info("%s #%s de %s en sesión #%s", model.__name__, line.id, amount, session_id)
    return line


def add_extra_income(db: Session, session_id: int, concept: str, amount, actor_id: Optional[int]) -> ExtraIncome:
    # Solo afecta el neto; no toca saldos de cajas
    return _add_session_line(db, ExtraIncome, session_id, concept, amount, actor_id)


def add_expense(db: Session, session_id: int, concept: str, amount, actor_id: Optional[int]) -> Expense:
    return _add_session_line(db, Expense, session_id, concept, amount, actor_id)


def set_distribution_percentages(db: Session, session_id: int, pa, pb, pc) -> Distribution:
    percentages = require_percentages(pa, pb, pc)

    with unit_of_work(db):
        session = _get_active_session(db, session_id, lock=True)
        distribution = distribution_service.upsert_distribution(db, session, percentages)

    return distribution


# -----------------------------
# Eliminar (ACTIVE -> REVERSED)
# -----------------------------
def delete_session(db: Session, session_id: int, actor_id: Optional[int]) -> StudioSession:
    """
    Borrado lógico con compensación: cada movimiento activo de la sesión recibe
    su contra-movimiento y después se desactiva; luego se desactivan los hijos,
    el reparto y la sesión pasa a REVERSED. Todo en la misma transacción.
    """
    with unit_of_work(db):
        session = _get_active_session(db, session_id, lock=True)

        movements = (
            db.query(CashMovement)
            .filter(
                CashMovement.session_id == session.id,
                CashMovement.is_active == True,
                CashMovement.reverses_id.is_(None),
            )
            .order_by(CashMovement.id)
            .all()
        )
        ledger.lock_registers(db, [m.register_id for m in movements])

        # 1. Compensar y LUEGO desactivar cada movimiento
        for movement in movements:
            ledger.reverse_movement(db, movement, actor_id)

        # 2. Hijos y reparto
        for model in (Settlement, ExtraIncome, Expense):
            for line in db.query(model).filter(model.session_id == session.id, model.is_active == True):
                line.is_active = False
        distribution = db.query(Distribution).filter(Distribution.session_id == session.id).first()
        if distribution is not None:
            distribution.is_active = False

        # 3. Transición de estado
        session.status = SessionStatus.REVERSED
        db.flush()

    logger.info("Sesión #%s revertida (%d movimientos compensados)", session.id, len(movements))
    return session


# -----------------------------
# Consultas
# -----------------------------
def get_session_detail(db: Session, session_id: int) -> StudioSession:
    session = _get_active_session(db, session_id)
    # Las colecciones pueden venir de una carga anterior en la misma sesión
    db.expire(session)
    return session


def list_sessions(
    db: Session,
    limit: int = 50,
    offset: int = 0,
    session_date: Optional[date] = None,
    client_name: Optional[str] = None,
) -> Tuple[List[StudioSession], int]:
    query = db.query(StudioSession).filter(StudioSession.status == SessionStatus.ACTIVE)
    if session_date:
        query = query.filter(StudioSession.session_date == session_date)
    if client_name:
        query = query.filter(StudioSession.client_name.contains(client_name))

    total = query.count()
    items = (
        query.order_by(StudioSession.session_date.desc(), StudioSession.start_time.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def upcoming_sessions(db: Session, limit: int = 20, today: Optional[date] = None) -> List[StudioSession]:
    today = today or date.today()
    return (
        db.query(StudioSession)
        .filter(StudioSession.status == SessionStatus.ACTIVE, StudioSession.session_date >= today)
        .order_by(StudioSession.session_date.asc(), StudioSession.start_time.asc())
        .limit(limit)
        .all()
    )

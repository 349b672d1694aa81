# studio_ledger/services/ledger.py
"""
Libro de cajas.

Es el único código que modifica `CashRegister.balance`. Cada movimiento
guarda el saldo anterior y el nuevo, y el saldo de la caja se actualiza en
la misma transacción del llamador.

Todas las funciones de escritura se ejecutan DENTRO de una unidad de trabajo
abierta por el llamador (database.unit_of_work); nunca hacen commit.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from studio_ledger import config
from studio_ledger.database import in_unit_of_work
from studio_ledger.errors import InsufficientBalance, NotFound
from studio_ledger.models import CashMovement, CashRegister, MovementKind, RegisterType
from studio_ledger.utils.money import ZERO, require_positive_amount, round_money

logger = logging.getLogger(__name__)

REVERSAL_PREFIX = "Reverso: "


def _require_unit_of_work(db: Session):
    if not in_unit_of_work(db):
        raise RuntimeError("Las escrituras del libro de cajas requieren una unidad de trabajo abierta")


def signed_amount(kind: MovementKind, amount: Decimal) -> Decimal:
    return amount if kind == MovementKind.CREDIT else -amount


# -----------------------------
# Lecturas con lock
# -----------------------------
def get_register(db: Session, register_id: int, lock: bool = False) -> CashRegister:
    """Caja activa por id. Con lock=True toma el lock de fila y relee el saldo vigente."""
    query = db.query(CashRegister).filter(CashRegister.id == register_id)
    if lock:
        query = query.with_for_update().populate_existing()
    register = query.first()
    if not register or not register.is_active:
        raise NotFound("Caja no encontrada o inactiva")
    return register


def lock_registers(db: Session, register_ids: Iterable[int]) -> Dict[int, CashRegister]:
    """
    Bloquea varias cajas en orden ascendente de id. Dos operaciones que tocan
    las mismas cajas siempre las bloquean en el mismo orden (sin deadlock).
    """
    _require_unit_of_work(db)
    locked = {}
    for register_id in sorted(set(register_ids)):
        locked[register_id] = get_register(db, register_id, lock=True)
    return locked


def get_register_by_name(db: Session, name: str) -> CashRegister:
    register = (
        db.query(CashRegister)
        .filter(CashRegister.name == name, CashRegister.is_active == True)
        .first()
    )
    if not register:
        raise NotFound(f"Caja {name} no encontrada")
    return register


def designated_register_name(register_type: RegisterType) -> str:
    # Se lee en cada llamada para respetar cambios de configuración
    return {
        RegisterType.BANK: config.BANK_REGISTER_NAME,
        RegisterType.CASH: config.CASH_REGISTER_NAME,
        RegisterType.SAVINGS: config.SAVINGS_REGISTER_NAME,
    }[register_type]


def get_designated_register(db: Session, register_type: RegisterType) -> CashRegister:
    """
    Caja que recibe los movimientos automáticos de un tipo: se resuelve por su
    nombre configurado y debe ser de ese tipo.
    """
    register = get_register_by_name(db, designated_register_name(register_type))
    if register.register_type != register_type:
        raise NotFound(f"La caja {register.name} no es de tipo {register_type.value}")
    return register


# -----------------------------
# Escrituras
# -----------------------------
def post_movement(
    db: Session,
    register_id: int,
    kind: MovementKind,
    concept: str,
    amount,
    actor_id: Optional[int],
    session_id: Optional[int] = None,
    reverses_id: Optional[int] = None,
) -> CashMovement:
    """
    Registra un ingreso (CREDIT) o retiro (DEBIT) y actualiza el saldo de la caja.
    Un retiro que dejaría el saldo negativo lanza InsufficientBalance sin escribir nada.
    """
    _require_unit_of_work(db)
    amount = require_positive_amount(amount)

    register = get_register(db, register_id, lock=True)
    balance_before = round_money(register.balance)

    if kind == MovementKind.CREDIT:
        balance_after = round_money(balance_before + amount)
    elif kind == MovementKind.DEBIT:
        if balance_before < amount:
            logger.warning(
                "Retiro rechazado en caja %s: saldo %s, monto %s", register.name, balance_before, amount
            )
            raise InsufficientBalance(
                f"Saldo insuficiente. Saldo actual: ${balance_before}, Monto a retirar: ${amount}"
            )
        balance_after = round_money(balance_before - amount)
    else:
        raise ValueError(f"Tipo de movimiento inválido: {kind!r}")

    movement = CashMovement(
        register_id=register.id,
        kind=kind,
        concept=concept,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance_after,
        session_id=session_id,
        reverses_id=reverses_id,
        created_by_id=actor_id,
        is_active=True,
    )
    db.add(movement)
    register.balance = balance_after
    db.flush()

    logger.info(
        "Movimiento %s #%s en caja %s: %s (%s -> %s)",
        kind.value, movement.id, register.name, amount, balance_before, balance_after,
    )
    return movement


def reverse_movement(db: Session, movement: CashMovement, actor_id: Optional[int]) -> CashMovement:
    """
    Compensa un movimiento con otro de signo contrario y LUEGO desactiva el original.
    El orden inverso dejaría el saldo inconsistente con el historial entre pasos.
    """
    compensation = post_movement(
        db,
        register_id=movement.register_id,
        kind=movement.kind.opposite,
        concept=f"{REVERSAL_PREFIX}{movement.concept}",
        amount=movement.amount,
        actor_id=actor_id,
        session_id=movement.session_id,
        reverses_id=movement.id,
    )
    movement.is_active = False
    db.flush()
    return compensation


# -----------------------------
# Proyecciones de lectura
# -----------------------------
def list_registers(db: Session) -> List[CashRegister]:
    return db.query(CashRegister).filter(CashRegister.is_active == True).order_by(CashRegister.id).all()


def list_movements(db: Session, register_id: int, limit: int = 50, offset: int = 0) -> Tuple[List[CashMovement], int]:
    get_register(db, register_id)
    query = db.query(CashMovement).filter(
        CashMovement.register_id == register_id,
        CashMovement.is_active == True,
    )
    total = query.count()
    items = query.order_by(CashMovement.id.desc()).offset(offset).limit(limit).all()
    return items, total


@dataclass
class RegisterAudit:
    register_id: int
    register_name: str
    opening_balance: Decimal
    balance: Decimal
    replayed_balance: Decimal
    movement_count: int
    broken_links: List[int] = field(default_factory=list)  # ids cuyo balance_before no encadena

    @property
    def consistent(self) -> bool:
        return not self.broken_links and self.replayed_balance == self.balance


def audit_register(db: Session, register_id: int) -> RegisterAudit:
    """
    Reproduce TODO el historial (activos, reversados y compensaciones) en orden
    de creación y lo compara con el saldo vivo de la caja.
    """
    register = get_register(db, register_id)
    movements = (
        db.query(CashMovement)
        .filter(CashMovement.register_id == register_id)
        .order_by(CashMovement.id)
        .all()
    )

    running = round_money(register.opening_balance or ZERO)
    broken = []
    for movement in movements:
        if round_money(movement.balance_before) != running:
            broken.append(movement.id)
        running = round_money(running + signed_amount(movement.kind, round_money(movement.amount)))
        if round_money(movement.balance_after) != running:
            broken.append(movement.id)

    audit = RegisterAudit(
        register_id=register.id,
        register_name=register.name,
        opening_balance=round_money(register.opening_balance or ZERO),
        balance=round_money(register.balance),
        replayed_balance=running,
        movement_count=len(movements),
        broken_links=sorted(set(broken)),
    )
    if not audit.consistent:
        logger.error(
            "Caja %s inconsistente: saldo %s, reproducido %s, eslabones rotos %s",
            register.name, audit.balance, audit.replayed_balance, audit.broken_links,
        )
    return audit

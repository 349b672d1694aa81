# studio_ledger/services/distribution.py
"""
Cálculo del reparto del neto de una sesión entre los tres beneficiarios.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Tuple

from sqlalchemy.orm import Session

from studio_ledger import config
from studio_ledger.errors import InvalidInput
from studio_ledger.models import (
    Distribution, Expense, ExtraIncome, SessionStatus, Settlement, StudioSession
)
from studio_ledger.utils.money import HUNDRED, ZERO, percentages_sum_to_100, round_money, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionTotals:
    income_total: Decimal
    expense_total: Decimal
    savings_amount: Decimal
    net: Decimal


def split(net, pa, pb, pc) -> Tuple[Decimal, Decimal, Decimal]:
    """
    a y b se redondean de forma independiente; c = net - a - b absorbe el
    residuo, así a + b + c == net exacto (también con neto cero o negativo).
    """
    if not percentages_sum_to_100(pa, pb, pc):
        raise InvalidInput("Los porcentajes deben sumar 100%")

    net = round_money(net)
    a = round_money(net * to_decimal(pa) / HUNDRED)
    b = round_money(net * to_decimal(pb) / HUNDRED)
    c = net - a - b
    return a, b, c


def _sum_amounts(rows) -> Decimal:
    return round_money(sum((round_money(amount) for (amount,) in rows), ZERO))


def compute_session_totals(db: Session, session: StudioSession) -> SessionTotals:
    """ingresos = anticipo + liquidaciones + ingresos extra; neto = ingresos - gastos - ahorro."""
    # Los hijos recién agregados deben estar en la BD antes de sumar
    db.flush()

    settlements = _sum_amounts(
        db.query(Settlement.amount).filter(Settlement.session_id == session.id, Settlement.is_active == True)
    )
    extra_incomes = _sum_amounts(
        db.query(ExtraIncome.amount).filter(ExtraIncome.session_id == session.id, ExtraIncome.is_active == True)
    )
    expense_total = _sum_amounts(
        db.query(Expense.amount).filter(Expense.session_id == session.id, Expense.is_active == True)
    )

    advance = round_money(session.advance or ZERO)
    savings_amount = round_money(session.savings_amount or ZERO)
    income_total = round_money(advance + settlements + extra_incomes)
    net = round_money(income_total - expense_total - savings_amount)

    return SessionTotals(
        income_total=income_total,
        expense_total=expense_total,
        savings_amount=savings_amount,
        net=net,
    )


def upsert_distribution(db: Session, session: StudioSession, percentages) -> Distribution:
    """Recalcula totales y reparto; actualiza la fila existente o crea la de la sesión."""
    pa, pb, pc = (round_money(p) for p in percentages)
    totals = compute_session_totals(db, session)
    amount_a, amount_b, amount_c = split(totals.net, pa, pb, pc)

    distribution = db.query(Distribution).filter(Distribution.session_id == session.id).first()
    if distribution is None:
        distribution = Distribution(session_id=session.id, is_active=True)
        db.add(distribution)

    distribution.percentage_a = pa
    distribution.percentage_b = pb
    distribution.percentage_c = pc
    distribution.amount_a = amount_a
    distribution.amount_b = amount_b
    distribution.amount_c = amount_c
    distribution.income_total = totals.income_total
    distribution.expense_total = totals.expense_total
    distribution.net = totals.net
    db.flush()

    logger.info(
        "Reparto sesión #%s: neto %s -> %s / %s / %s (%s/%s/%s)",
        session.id, totals.net, amount_a, amount_b, amount_c, pa, pb, pc,
    )
    return distribution


def distribution_report(db: Session, date_from: date, date_to: date) -> Dict[str, Any]:
    """Acumulados de sesiones activas entre dos fechas (inclusive) y monto por beneficiario."""
    if date_to < date_from:
        raise InvalidInput("La fecha final debe ser posterior o igual a la inicial")

    sessions = (
        db.query(StudioSession)
        .filter(
            StudioSession.status == SessionStatus.ACTIVE,
            StudioSession.session_date >= date_from,
            StudioSession.session_date <= date_to,
        )
        .order_by(StudioSession.session_date, StudioSession.start_time)
        .all()
    )

    totals = {
        "net": ZERO,
        "advances": ZERO,
        "savings": ZERO,
        "expenses": ZERO,
        "incomes": ZERO,
    }
    shares = [ZERO, ZERO, ZERO]

    for session in sessions:
        totals["advances"] += round_money(session.advance)
        totals["savings"] += round_money(session.savings_amount)
        dist = session.distribution
        if dist and dist.is_active:
            totals["net"] += round_money(dist.net)
            totals["expenses"] += round_money(dist.expense_total)
            totals["incomes"] += round_money(dist.income_total)
            shares[0] += round_money(dist.amount_a)
            shares[1] += round_money(dist.amount_b)
            shares[2] += round_money(dist.amount_c)

    labels = (list(config.BENEFICIARY_NAMES) + ["A", "B", "C"])[:3]
    return {
        "date_from": date_from,
        "date_to": date_to,
        "session_count": len(sessions),
        "total_net": totals["net"],
        "total_advances": totals["advances"],
        "total_savings": totals["savings"],
        "total_expenses": totals["expenses"],
        "total_incomes": totals["incomes"],
        "beneficiaries": [
            {"name": labels[i], "amount": shares[i]} for i in range(3)
        ],
        "sessions": sessions,
    }

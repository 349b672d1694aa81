# studio_ledger/utils/money.py
"""
Redondeo monetario y validaciones puras.

Todo monto que entra o sale del libro de cajas pasa por `round_money`:
2 decimales, ROUND_HALF_UP sobre la representación decimal (nunca binaria).
"""
from datetime import time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Tuple, Union

from studio_ledger.errors import InvalidInput

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
PERCENTAGE_TOLERANCE = Decimal("0.01")
MAX_AMOUNT = Decimal("9999999999.99")  # Numeric(12, 2)


def to_decimal(value: Number) -> Decimal:
    """Convierte a Decimal sin redondear. Los float pasan por str para no arrastrar ruido binario."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidInput(f"Monto inválido: {value!r}")
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidInput(f"Monto inválido: {value!r}")
    else:
        raise InvalidInput(f"Monto inválido: {value!r}")

    if not result.is_finite():
        raise InvalidInput(f"Monto inválido: {value!r}")
    return result


def round_money(value: Number) -> Decimal:
    try:
        return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # quantize falla cuando el número excede la precisión del contexto
        raise InvalidInput(f"Monto fuera de rango: {value!r}")


def _fits_in_cents(amount: Decimal) -> bool:
    if abs(amount) > MAX_AMOUNT:
        return False
    # 10.500 es válido (el cero final no es significativo), 10.505 no
    return amount == amount.quantize(CENT)


def is_valid_amount(value: Number) -> bool:
    """True si el monto es >= 0, cabe en la columna y tiene como máximo 2 decimales significativos."""
    try:
        amount = to_decimal(value)
    except InvalidInput:
        return False
    return amount >= 0 and _fits_in_cents(amount)


def percentages_sum_to_100(p1: Number, p2: Number, p3: Number) -> bool:
    try:
        total = to_decimal(p1) + to_decimal(p2) + to_decimal(p3)
    except InvalidInput:
        return False
    return abs(total - HUNDRED) < PERCENTAGE_TOLERANCE


def is_valid_time_range(start: time, end: time) -> bool:
    """Comparación de hora del día dentro del mismo día: la final debe ser posterior."""
    return end > start


def require_positive_amount(value: Number, field: str = "monto") -> Decimal:
    """Valida y redondea un monto estrictamente positivo; lanza InvalidInput si no lo es."""
    if not is_valid_amount(value):
        raise InvalidInput(f"El {field} debe ser mayor o igual a 0 y tener máximo 2 decimales")
    amount = round_money(value)
    if amount <= 0:
        raise InvalidInput(f"El {field} debe ser mayor a 0")
    return amount


def require_amount(value: Number, field: str = "monto") -> Decimal:
    """Como require_positive_amount pero acepta cero."""
    if not is_valid_amount(value):
        raise InvalidInput(f"El {field} debe ser mayor o igual a 0 y tener máximo 2 decimales")
    return round_money(value)


def require_signed_amount(value: Number, field: str = "monto") -> Decimal:
    """Monto que puede ser negativo (p. ej. un restante capturado a mano)."""
    amount = to_decimal(value)
    if not _fits_in_cents(amount):
        raise InvalidInput(f"El {field} está fuera de rango o tiene más de 2 decimales")
    return round_money(amount)


def require_percentages(pa: Number, pb: Number, pc: Number) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Valida el trío tal como se va a guardar en Numeric(5, 2): cada porcentaje
    >= 0 con máximo 2 decimales, y la suma de los valores redondeados igual a 100.
    """
    for value in (pa, pb, pc):
        if not is_valid_amount(value):
            raise InvalidInput("Los porcentajes deben ser mayores o iguales a 0 y tener máximo 2 decimales")
    percentages = (round_money(pa), round_money(pb), round_money(pc))
    if not percentages_sum_to_100(*percentages):
        raise InvalidInput("Los porcentajes deben sumar 100%")
    return percentages

# studio_ledger/errors.py
"""
Errores tipados del núcleo contable.

Cada error lleva un `kind` estable y una razón legible. La capa HTTP
(main.py) los traduce a respuestas JSON; ningún detalle interno de la base
de datos sale hacia el cliente.
"""


class LedgerError(Exception):
    kind = "INTERNAL"
    status_code = 500
    retryable = False

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    def to_dict(self):
        return {"detail": self.reason, "kind": self.kind, "retryable": self.retryable}


class InvalidInput(LedgerError):
    """Monto mal formado, rango de horas inválido, porcentajes que no suman 100."""
    kind = "INVALID_INPUT"
    status_code = 400


class NotFound(LedgerError):
    """Sesión, paquete o caja inexistente o inactiva."""
    kind = "NOT_FOUND"
    status_code = 404


class InsufficientBalance(LedgerError):
    kind = "INSUFFICIENT_BALANCE"
    status_code = 400


class Conflict(LedgerError):
    """Modificación concurrente o timeout de locks. El cliente puede reintentar."""
    kind = "CONFLICT"
    status_code = 409
    retryable = True


class Internal(LedgerError):
    kind = "INTERNAL"
    status_code = 500

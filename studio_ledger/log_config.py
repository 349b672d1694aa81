"""
Configuración de logging del servicio.

Un solo handler de consola con formato uniforme; los loggers ruidosos
(SQLAlchemy, uvicorn.access) se suben a WARNING.

Uso:
    from studio_ledger.log_config import setup_logging
    setup_logging()
    logger = logging.getLogger(__name__)
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "uvicorn.access",
    "passlib",
]


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Inicializa el logger raíz y devuelve el logger del paquete."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    # Evitar handlers duplicados si la app se recarga
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger("studio_ledger")
    logger.info("Logging inicializado (nivel %s)", level.upper())
    return logger

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from studio_ledger import config
from studio_ledger.errors import Conflict, Internal, LedgerError

logger = logging.getLogger(__name__)

# Marca en Session.info mientras hay una unidad de trabajo abierta
_UOW_FLAG = "unit_of_work_open"

# Fragmentos de mensajes de error que indican contención (reintentable)
_CONFLICT_MARKERS = ("locked", "lock", "timeout", "deadlock", "serializ", "canceling statement")


def build_engine(url: str = config.DATABASE_URL, **kwargs):
    """
    Crea el engine con límites de espera acotados.
    SQLite: BEGIN IMMEDIATE en cada transacción (serializa escritores).
    PostgreSQL: lock_timeout y statement_timeout por conexión.
    """
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": config.TX_LOCK_TIMEOUT}
        engine = create_engine(url, connect_args=connect_args, echo=config.SQL_ECHO, **kwargs)

        @event.listens_for(engine, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):
            # Desactiva el BEGIN implícito de pysqlite; lo emitimos nosotros
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    lock_ms = int(config.TX_LOCK_TIMEOUT * 1000)
    statement_ms = int(config.TX_STATEMENT_TIMEOUT * 1000)
    connect_args = {"options": f"-c lock_timeout={lock_ms} -c statement_timeout={statement_ms}"}
    return create_engine(
        url,
        connect_args=connect_args,
        pool_pre_ping=True,
        pool_timeout=config.POOL_TIMEOUT,
        echo=config.SQL_ECHO,
        **kwargs,
    )


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

# ESTA es la Base que todos los modelos deben usar
Base = declarative_base()


# Dependencia para obtener la DB en los endpoints
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def in_unit_of_work(db: Session) -> bool:
    return bool(db.info.get(_UOW_FLAG))


def _is_conflict(exc: SQLAlchemyError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in _CONFLICT_MARKERS)


@contextmanager
def unit_of_work(db: Session):
    """
    Abre UNA transacción atómica sobre `db`; commit al salir, rollback ante
    cualquier excepción. No se puede anidar.

    Los errores de la base se traducen a errores tipados:
    contención/locks/unicidad -> Conflict (reintentable), el resto -> Internal.
    """
    if in_unit_of_work(db):
        raise RuntimeError("Ya hay una unidad de trabajo abierta en esta sesión")

    # Cierra la transacción implícita de lectura (autobegin) si la hubiera
    if db.in_transaction():
        db.rollback()

    db.info[_UOW_FLAG] = True
    try:
        with db.begin():
            yield db
    except LedgerError:
        raise
    except (IntegrityError, StaleDataError) as exc:
        logger.warning("Conflicto de escritura concurrente: %s", exc)
        raise Conflict("La operación entró en conflicto con otra modificación; reintenta") from exc
    except OperationalError as exc:
        if _is_conflict(exc):
            logger.warning("Timeout o lock no disponible: %s", exc)
            raise Conflict("La base de datos está ocupada; reintenta la operación") from exc
        logger.exception("Error operativo de la base de datos")
        raise Internal("Error interno del almacén de datos") from exc
    except SQLAlchemyError as exc:
        logger.exception("Error inesperado de la base de datos")
        raise Internal("Error interno del almacén de datos") from exc
    finally:
        db.info.pop(_UOW_FLAG, None)

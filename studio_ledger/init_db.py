"""
Siembra inicial: cajas designadas, usuario administrador y un paquete de ejemplo.

Uso:
    python -m studio_ledger.init_db
"""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from studio_ledger import config
from studio_ledger.database import SessionLocal, engine, Base
from studio_ledger.log_config import setup_logging
from studio_ledger.models import CashRegister, Package, RegisterType, Role, User
from studio_ledger.security import get_password_hash

logger = logging.getLogger(__name__)

REGISTERS = [
    (config.BANK_REGISTER_NAME, RegisterType.BANK),
    (config.CASH_REGISTER_NAME, RegisterType.CASH),
    (config.SAVINGS_REGISTER_NAME, RegisterType.SAVINGS),
]


def seed_registers(db: Session, opening_balance: Decimal = Decimal("0.00")):
    """Una caja activa por tipo. El saldo inicial también es su saldo de apertura."""
    for name, register_type in REGISTERS:
        exists = db.query(CashRegister).filter(CashRegister.register_type == register_type).first()
        if exists:
            logger.info("Caja %s ya existe.", exists.name)
            continue
        db.add(CashRegister(
            name=name,
            register_type=register_type,
            opening_balance=opening_balance,
            balance=opening_balance,
            is_active=True,
        ))
        logger.info("Caja %s creada.", name)
    db.commit()


def seed_admin(db: Session, username: str = "admin", password: str = "admin123"):
    admin = db.query(User).filter(User.username == username).first()
    if admin:
        logger.info("Usuario admin ya existe.")
        return admin
    admin = User(
        username=username,
        full_name="Administrador",
        password_hash=get_password_hash(password),
        role=Role.ADMIN,
    )
    db.add(admin)
    db.commit()
    logger.info("Usuario admin creado.")
    return admin


def seed_sample_package(db: Session):
    if db.query(Package).first():
        return
    db.add(Package(
        name="Sesión básica",
        description="1 hora, 10 fotos editadas",
        price=Decimal("1000.00"),
        percentage_a=Decimal("40.00"),
        percentage_b=Decimal("30.00"),
        percentage_c=Decimal("30.00"),
    ))
    db.commit()
    logger.info("Paquete de ejemplo creado.")


def init_db():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        logger.info("--- INICIANDO SEED ---")
        seed_registers(db)
        seed_admin(db)
        seed_sample_package(db)
        logger.info("--- SEED COMPLETADO ---")
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging(config.LOG_LEVEL)
    init_db()

"""
Fixtures comunes: base SQLite en memoria por prueba, cajas sembradas,
un paquete 40/30/30 y un usuario administrador.
"""
import os

# Antes de importar el paquete: el engine por defecto no debe tocar disco
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studio_ledger.database import Base, build_engine
from studio_ledger.models import CashRegister, Package, RegisterType, Role, User
from studio_ledger.schemas.sessions import SessionCreate


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def registers(db):
    """Cajas BANK / CASH / SAVINGS con saldo de apertura cero."""
    created = {}
    for name, register_type in (("BBVA", RegisterType.BANK), ("Efectivo", RegisterType.CASH), ("Caja", RegisterType.SAVINGS)):
        register = CashRegister(
            name=name,
            register_type=register_type,
            opening_balance=Decimal("0.00"),
            balance=Decimal("0.00"),
            is_active=True,
        )
        db.add(register)
        created[register_type] = register
    db.commit()
    return created


@pytest.fixture
def admin(db):
    user = User(username="admin", full_name="Administrador", password_hash="x", role=Role.ADMIN)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def package(db):
    package = Package(
        name="Sesión básica",
        price=Decimal("1000.00"),
        percentage_a=Decimal("40.00"),
        percentage_b=Decimal("30.00"),
        percentage_c=Decimal("30.00"),
        is_active=True,
    )
    db.add(package)
    db.commit()
    return package


@pytest.fixture
def premium_package(db):
    package = Package(
        name="Sesión premium",
        price=Decimal("2000.00"),
        percentage_a=Decimal("50.00"),
        percentage_b=Decimal("25.00"),
        percentage_c=Decimal("25.00"),
        is_active=True,
    )
    db.add(package)
    db.commit()
    return package


@pytest.fixture
def make_session_data(package):
    """Fábrica de SessionCreate con valores por defecto razonables."""
    def _make(**overrides):
        data = {
            "session_date": date(2026, 3, 14),
            "start_time": time(10, 0),
            "end_time": time(11, 0),
            "client_name": "Ana López",
            "client_phone": "555-0101",
            "package_id": package.id,
            "advance": Decimal("300.00"),
            "savings_amount": Decimal("0.00"),
        }
        data.update(overrides)
        return SessionCreate(**data)
    return _make


@pytest.fixture
def balance_of(db):
    """Saldo de una caja releído de la base."""
    def _balance(register):
        db.expire(register)
        return Decimal(register.balance)
    return _balance

"""
Libro de cajas: movimientos, saldo insuficiente, reversos y auditoría.
"""
import threading
from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker

from studio_ledger import config
from studio_ledger.database import Base, build_engine, in_unit_of_work, unit_of_work
from studio_ledger.errors import Conflict, InsufficientBalance, Internal, InvalidInput, NotFound
from studio_ledger.models import CashMovement, CashRegister, MovementKind, Package, RegisterType, User
from studio_ledger.schemas.sessions import SessionCreate
from studio_ledger.services import ledger
from studio_ledger.services import sessions as session_service


class TestPostMovement:
    def test_credit_updates_balance_and_snapshots(self, db, registers, balance_of):
        bank = registers[RegisterType.BANK]
        with unit_of_work(db):
            first = ledger.post_movement(db, bank.id, MovementKind.CREDIT, "Depósito", "100.00", None)
            second = ledger.post_movement(db, bank.id, MovementKind.CREDIT, "Depósito", "50.50", None)

        assert balance_of(bank) == Decimal("150.50")
        assert first.balance_before == Decimal("0.00")
        assert first.balance_after == Decimal("100.00")
        assert second.balance_before == first.balance_after
        assert second.balance_after == Decimal("150.50")

    def test_debit_with_exact_balance(self, db, registers, balance_of):
        cash = registers[RegisterType.CASH]
        with unit_of_work(db):
            ledger.post_movement(db, cash.id, MovementKind.CREDIT, "Fondo", "80", None)
            ledger.post_movement(db, cash.id, MovementKind.DEBIT, "Retiro", "80", None)
        assert balance_of(cash) == Decimal("0.00")

    def test_insufficient_balance_leaves_register_unchanged(self, db, registers, balance_of):
        cash = registers[RegisterType.CASH]
        with unit_of_work(db):
            ledger.post_movement(db, cash.id, MovementKind.CREDIT, "Fondo", "10.00", None)

        with pytest.raises(InsufficientBalance) as exc_info:
            with unit_of_work(db):
                ledger.post_movement(db, cash.id, MovementKind.DEBIT, "Retiro", "10.01", None)

        assert "Saldo insuficiente" in exc_info.value.reason
        assert balance_of(cash) == Decimal("10.00")
        assert db.query(CashMovement).filter(CashMovement.register_id == cash.id).count() == 1

    @pytest.mark.parametrize("amount", ["0", "-5", "1.001", "abc"])
    def test_rejects_invalid_amounts(self, db, registers, amount):
        with pytest.raises(InvalidInput):
            with unit_of_work(db):
                ledger.post_movement(db, registers[RegisterType.BANK].id, MovementKind.CREDIT, "X", amount, None)

    def test_requires_unit_of_work(self, db, registers):
        assert not in_unit_of_work(db)
        with pytest.raises(RuntimeError):
            ledger.post_movement(db, registers[RegisterType.BANK].id, MovementKind.CREDIT, "X", "1", None)

    def test_unknown_register(self, db, registers):
        with pytest.raises(NotFound):
            with unit_of_work(db):
                ledger.post_movement(db, 999, MovementKind.CREDIT, "X", "1", None)

    def test_inactive_register(self, db, registers):
        savings = registers[RegisterType.SAVINGS]
        savings.is_active = False
        db.commit()
        with pytest.raises(NotFound):
            with unit_of_work(db):
                ledger.post_movement(db, savings.id, MovementKind.CREDIT, "X", "1", None)


class TestReverseMovement:
    def test_compensates_then_deactivates(self, db, registers, balance_of):
        bank = registers[RegisterType.BANK]
        with unit_of_work(db):
            original = ledger.post_movement(db, bank.id, MovementKind.CREDIT, "Anticipo", "500", None)
        with unit_of_work(db):
            compensation = ledger.reverse_movement(db, original, None)

        assert balance_of(bank) == Decimal("0.00")
        assert original.is_active is False
        assert compensation.is_active is True
        assert compensation.kind == MovementKind.DEBIT
        assert compensation.reverses_id == original.id
        assert compensation.concept == "Reverso: Anticipo"

    def test_reverse_debit_is_credit(self, db, registers, balance_of):
        cash = registers[RegisterType.CASH]
        with unit_of_work(db):
            ledger.post_movement(db, cash.id, MovementKind.CREDIT, "Fondo", "100", None)
            debit = ledger.post_movement(db, cash.id, MovementKind.DEBIT, "Retiro", "40", None)
            compensation = ledger.reverse_movement(db, debit, None)
        assert compensation.kind == MovementKind.CREDIT
        assert balance_of(cash) == Decimal("100.00")


class TestQueries:
    def test_list_movements_only_active_newest_first(self, db, registers):
        bank = registers[RegisterType.BANK]
        with unit_of_work(db):
            first = ledger.post_movement(db, bank.id, MovementKind.CREDIT, "Uno", "10", None)
            ledger.post_movement(db, bank.id, MovementKind.CREDIT, "Dos", "20", None)
            ledger.reverse_movement(db, first, None)

        items, total = ledger.list_movements(db, bank.id)
        assert total == 2
        assert [m.concept for m in items] == ["Reverso: Uno", "Dos"]

    def test_list_movements_pagination(self, db, registers):
        bank = registers[RegisterType.BANK]
        with unit_of_work(db):
            for i in range(5):
                ledger.post_movement(db, bank.id, MovementKind.CREDIT, f"M{i}", "1", None)
        items, total = ledger.list_movements(db, bank.id, limit=2, offset=2)
        assert total == 5
        assert [m.concept for m in items] == ["M2", "M1"]

    def test_lookup_by_name(self, db, registers):
        assert ledger.get_register_by_name(db, "Caja").register_type == RegisterType.SAVINGS
        with pytest.raises(NotFound):
            ledger.get_register_by_name(db, "Inexistente")

    def test_designated_register_follows_configured_name(self, db, registers):
        assert ledger.get_designated_register(db, RegisterType.CASH).name == "Efectivo"
        assert ledger.get_designated_register(db, RegisterType.BANK).name == "BBVA"

    def test_designated_register_renamed_is_not_found(self, db, registers):
        registers[RegisterType.BANK].name = "Santander"
        db.commit()
        with pytest.raises(NotFound):
            ledger.get_designated_register(db, RegisterType.BANK)

    def test_designated_register_must_match_type(self, db, registers, monkeypatch):
        monkeypatch.setattr(config, "CASH_REGISTER_NAME", "Caja")
        with pytest.raises(NotFound) as exc_info:
            ledger.get_designated_register(db, RegisterType.CASH)
        assert "no es de tipo CASH" in exc_info.value.reason

    def test_list_registers_skips_inactive(self, db, registers):
        registers[RegisterType.SAVINGS].is_active = False
        db.commit()
        names = [r.name for r in ledger.list_registers(db)]
        assert names == ["BBVA", "Efectivo"]


class TestAudit:
    def test_consistent_after_history_with_reversals(self, db, registers):
        bank = registers[RegisterType.BANK]
        with unit_of_work(db):
            original = ledger.post_movement(db, bank.id, MovementKind.CREDIT, "Anticipo", "300", None)
            ledger.post_movement(db, bank.id, MovementKind.CREDIT, "Liquidación", "700", None)
            ledger.reverse_movement(db, original, None)

        audit = ledger.audit_register(db, bank.id)
        assert audit.consistent
        assert audit.movement_count == 3
        assert audit.replayed_balance == Decimal("700.00")
        assert audit.broken_links == []

    def test_detects_tampered_balance(self, db, registers):
        bank = registers[RegisterType.BANK]
        with unit_of_work(db):
            ledger.post_movement(db, bank.id, MovementKind.CREDIT, "Anticipo", "300", None)
        bank.balance = Decimal("999.00")
        db.commit()

        audit = ledger.audit_register(db, bank.id)
        assert not audit.consistent
        assert audit.replayed_balance == Decimal("300.00")

    def test_respects_opening_balance(self, db, registers):
        cash = registers[RegisterType.CASH]
        cash.opening_balance = Decimal("50.00")
        cash.balance = Decimal("50.00")
        db.commit()
        with unit_of_work(db):
            ledger.post_movement(db, cash.id, MovementKind.DEBIT, "Retiro", "20", None)
        assert ledger.audit_register(db, cash.id).consistent


class TestUnitOfWork:
    def test_refuses_nesting(self, db):
        with pytest.raises(RuntimeError):
            with unit_of_work(db):
                with unit_of_work(db):
                    pass
        assert not in_unit_of_work(db)

    def test_integrity_error_is_conflict(self, db):
        with pytest.raises(Conflict) as exc_info:
            with unit_of_work(db):
                raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        assert exc_info.value.retryable is True

    def test_locked_database_is_conflict(self, db):
        with pytest.raises(Conflict):
            with unit_of_work(db):
                raise OperationalError("UPDATE", {}, Exception("database is locked"))

    def test_other_operational_error_is_internal(self, db):
        with pytest.raises(Internal) as exc_info:
            with unit_of_work(db):
                raise OperationalError("SELECT", {}, Exception("disk I/O error"))
        assert exc_info.value.retryable is False
        # El detalle de la base no se filtra al cliente
        assert "disk" not in exc_info.value.reason

    def test_rollback_discards_all_writes(self, db, registers, balance_of):
        bank = registers[RegisterType.BANK]
        savings = registers[RegisterType.SAVINGS]
        with pytest.raises(InsufficientBalance):
            with unit_of_work(db):
                ledger.post_movement(db, bank.id, MovementKind.CREDIT, "Depósito", "100", None)
                ledger.post_movement(db, savings.id, MovementKind.DEBIT, "Retiro", "1", None)

        assert balance_of(bank) == Decimal("0.00")
        assert db.query(CashMovement).count() == 0


class TestConcurrentPosting:
    """Varios hilos, cada uno con su propia Session, sobre una base en archivo."""

    THREADS = 4
    SETTLEMENTS_PER_THREAD = 10

    @pytest.fixture
    def file_engine(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
        Base.metadata.create_all(bind=engine)
        yield engine
        engine.dispose()

    @pytest.fixture
    def make_db(self, file_engine):
        return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=file_engine)

    @pytest.fixture
    def seeded(self, make_db):
        db = make_db()
        try:
            for name, register_type in (("BBVA", RegisterType.BANK), ("Efectivo", RegisterType.CASH), ("Caja", RegisterType.SAVINGS)):
                db.add(CashRegister(name=name, register_type=register_type, opening_balance=Decimal("0.00"), balance=Decimal("0.00"), is_active=True))
            package = Package(name="Sesión básica", price=Decimal("1000.00"), percentage_a=Decimal("40.00"), percentage_b=Decimal("30.00"), percentage_c=Decimal("30.00"), is_active=True)
            user = User(username="admin", full_name="Administrador", password_hash="x")
            db.add_all([package, user])
            db.commit()

            session = session_service.create_session(
                db,
                SessionCreate(
                    session_date=date(2026, 3, 14),
                    start_time=time(10, 0),
                    end_time=time(11, 0),
                    client_name="Ana López",
                    package_id=package.id,
                ),
                user.id,
            )
            cash_id = ledger.get_designated_register(db, RegisterType.CASH).id
            return session.id, cash_id, user.id
        finally:
            db.close()

    def _settle(self, make_db, session_id, actor_id, errors):
        db = make_db()
        try:
            for _ in range(self.SETTLEMENTS_PER_THREAD):
                while True:
                    try:
                        session_service.add_settlement(db, session_id, Decimal("1.00"), "cash", actor_id)
                        break
                    except Conflict:
                        continue
        except Exception as exc:
            errors.append(exc)
        finally:
            db.close()

    def test_parallel_settlements_keep_balance_consistent(self, make_db, seeded):
        session_id, cash_id, actor_id = seeded
        errors = []
        threads = [
            threading.Thread(target=self._settle, args=(make_db, session_id, actor_id, errors))
            for _ in range(self.THREADS)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        db = make_db()
        try:
            audit = ledger.audit_register(db, cash_id)
            assert audit.balance == Decimal("40.00")
            assert audit.movement_count == self.THREADS * self.SETTLEMENTS_PER_THREAD
            assert audit.consistent
        finally:
            db.close()

    def test_parallel_movements_never_overdraw(self, make_db, seeded):
        # 20 retiros de 1.00 contra un saldo de 10.00: exactamente 10 pasan
        _, cash_id, _ = seeded
        db = make_db()
        try:
            with unit_of_work(db):
                ledger.post_movement(db, cash_id, MovementKind.CREDIT, "Fondo", "10.00", None)
        finally:
            db.close()

        outcomes = []
        lock = threading.Lock()

        def withdraw():
            local = make_db()
            try:
                for _ in range(5):
                    while True:
                        try:
                            with unit_of_work(local):
                                ledger.post_movement(local, cash_id, MovementKind.DEBIT, "Retiro", "1.00", None)
                            result = "ok"
                            break
                        except InsufficientBalance:
                            result = "insufficient"
                            break
                        except Conflict:
                            continue
                    with lock:
                        outcomes.append(result)
            finally:
                local.close()

        threads = [threading.Thread(target=withdraw) for _ in range(self.THREADS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("ok") == 10
        assert outcomes.count("insufficient") == 10
        db = make_db()
        try:
            audit = ledger.audit_register(db, cash_id)
            assert audit.balance == Decimal("0.00")
            assert audit.consistent
        finally:
            db.close()

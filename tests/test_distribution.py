"""
Reparto del neto entre tres beneficiarios.
"""
from datetime import date
from decimal import Decimal

import pytest

from studio_ledger.errors import InvalidInput
from studio_ledger.services import sessions as session_service
from studio_ledger.services.distribution import distribution_report, split


class TestSplit:
    def test_simple(self):
        assert split(Decimal("300.00"), 40, 30, 30) == (Decimal("120.00"), Decimal("90.00"), Decimal("90.00"))

    @pytest.mark.parametrize("net", ["0", "100.01", "0.01", "-50", "-0.03", "12345.67"])
    @pytest.mark.parametrize("percentages", [(40, 30, 30), ("33.33", "33.33", "33.34"), (0, 0, 100), (100, 0, 0)])
    def test_parts_always_sum_to_net(self, net, percentages):
        a, b, c = split(Decimal(net), *percentages)
        assert a + b + c == Decimal(net)

    def test_third_share_absorbs_rounding(self):
        a, b, c = split(Decimal("100.01"), "33.33", "33.33", "33.34")
        assert (a, b) == (Decimal("33.33"), Decimal("33.33"))
        assert c == Decimal("33.35")

    def test_negative_net(self):
        assert split(Decimal("-50"), 40, 30, 30) == (Decimal("-20.00"), Decimal("-15.00"), Decimal("-15.00"))

    def test_rejects_percentages_not_summing_100(self):
        with pytest.raises(InvalidInput):
            split(Decimal("100"), 40, 30, 20)


class TestReport:
    def test_accumulates_active_sessions_in_range(self, db, registers, admin, make_session_data):
        session_service.create_session(db, make_session_data(session_date=date(2026, 3, 1)), admin.id)
        second = session_service.create_session(
            db, make_session_data(session_date=date(2026, 3, 2), advance=Decimal("500.00")), admin.id
        )
        dropped = session_service.create_session(db, make_session_data(session_date=date(2026, 3, 3)), admin.id)
        session_service.create_session(db, make_session_data(session_date=date(2026, 4, 1)), admin.id)
        session_service.add_expense(db, second.id, "Impresiones", Decimal("100.00"), admin.id)
        session_service.delete_session(db, dropped.id, admin.id)

        report = distribution_report(db, date(2026, 3, 1), date(2026, 3, 31))

        assert report["session_count"] == 2
        assert report["total_advances"] == Decimal("800.00")
        assert report["total_incomes"] == Decimal("800.00")
        assert report["total_expenses"] == Decimal("100.00")
        assert report["total_net"] == Decimal("700.00")
        shares = [b["amount"] for b in report["beneficiaries"]]
        assert sum(shares) == report["total_net"]
        assert shares == [Decimal("280.00"), Decimal("210.00"), Decimal("210.00")]

    def test_beneficiary_labels(self, db):
        report = distribution_report(db, date(2026, 1, 1), date(2026, 1, 31))
        assert [b["name"] for b in report["beneficiaries"]] == ["Socio A", "Socio B", "Socio C"]
        assert report["session_count"] == 0

    def test_rejects_inverted_range(self, db):
        with pytest.raises(InvalidInput):
            distribution_report(db, date(2026, 2, 1), date(2026, 1, 1))

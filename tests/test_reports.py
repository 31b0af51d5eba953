"""Tests de reportes, estadísticas del dashboard y formatos."""

from datetime import date

import pytest

from cuotas.formatting import format_currency, format_date, format_month, format_short_date
from cuotas.models import Participant
from cuotas.reports import (
    PAYMENTS_EXPORT_HEADERS,
    REPORT_HEADERS,
    export_filename,
    filter_payments,
    participants_export_frame,
    payments_export_frame,
    payments_report_frame,
    receipts_table,
    report_summary,
    to_csv_bytes,
)
from cuotas.stats import dashboard_stats, management_stats


@pytest.fixture
def payments(make_payment):
    return [
        make_payment("2025-01", 3000, participant_id=1, code="P001", receipt="10",
                     payment_date="2025-01-05", created_at="2025-01-05T10:00:00"),
        make_payment("2025-02", 1500, participant_id=1, code="P001", receipt="11",
                     payment_date="2025-02-05", created_at="2025-02-05T10:00:00"),
        make_payment("2025-02", 1500, participant_id=2, code="P002", receipt="11",
                     payment_date="2025-02-05", created_at="2025-02-05T10:00:00"),
        make_payment("2025-03", 3000, participant_id=2, code="P002", receipt="12",
                     payment_date="2025-03-07", created_at="2025-03-07T10:00:00"),
    ]


class TestFilterPayments:
    def test_no_filters(self, payments):
        assert filter_payments(payments) == payments

    def test_date_range_inclusive(self, payments):
        result = filter_payments(payments, start_date="2025-02-05", end_date="2025-03-07")
        assert len(result) == 3

    def test_participant(self, payments):
        assert {p.id for p in filter_payments(payments, participant_id=2)} == {
            payments[2].id, payments[3].id
        }

    def test_month(self, payments):
        assert len(filter_payments(payments, month="2025-02")) == 2
        assert len(filter_payments(payments, month="-03")) == 1

    def test_summary(self, payments):
        summary = report_summary(payments)
        assert summary == {"total_amount": 9000, "total_payments": 4, "unique_participants": 2}


class TestReceiptsTable:
    def test_one_row_per_receipt(self, payments):
        table = receipts_table(payments)

        assert list(table["Recibo"]) == ["#12", "#11", "#10"]
        shared = table[table["Recibo"] == "#11"].iloc[0]
        assert shared["Monto Total"] == 3000
        assert shared["Meses"] == "P001: Febrero 2025 | P002: Febrero 2025"
        assert shared["Observaciones"] == "-"

    def test_empty(self):
        assert receipts_table([]).empty


class TestCsvExport:
    def test_report_frame(self, payments):
        df = payments_report_frame(payments)
        assert list(df.columns) == REPORT_HEADERS
        assert df.iloc[0]["Mes"] == "Enero 2025"

    def test_csv_quotes_every_field(self, payments):
        content = to_csv_bytes(payments_report_frame(payments[:1])).decode("utf-8")
        lines = content.splitlines()
        assert lines[0] == '"Fecha","Participante","Código","Mes","Monto","Recibo"'
        assert lines[1].startswith('"2025-01-05",')

    def test_payments_export_newest_first(self, payments):
        df = payments_export_frame(payments)
        assert list(df.columns) == PAYMENTS_EXPORT_HEADERS
        assert df.iloc[0]["Fecha"] == "2025-03-07"

    def test_participants_export(self):
        participants = [
            Participant(1, "P001", "Ana", True, 3000, "2025-01-02T10:00:00"),
            Participant(2, "P002", "Luis", False, 3000, "2025-01-03T10:00:00"),
        ]
        df = participants_export_frame(participants)
        assert list(df["Estado"]) == ["Activo", "Inactivo"]
        assert list(df["Fecha Creación"]) == ["2025-01-02", "2025-01-03"]

    def test_export_filename(self):
        assert export_filename("pagos", date(2025, 3, 9)) == "pagos_2025-03-09.csv"


class TestStats:
    def test_dashboard(self, payments):
        active = [Participant(1, "P001", "Ana"), Participant(2, "P002", "Luis"),
                  Participant(3, "P003", "Eva")]

        stats = dashboard_stats(active, payments, "2025-02", monthly_fee=3000)

        assert stats.total_participants == 3
        assert stats.paid_this_month == 2
        assert stats.pending_this_month == 1
        assert stats.total_pending == 3000
        assert stats.total_collected == 9000
        assert stats.payment_rate == 67

    def test_dashboard_counts_distinct_participants(self, make_payment):
        active = [Participant(1, "P001", "Ana")]
        payments = [make_payment("2025-05", 1500), make_payment("2025-05", 1500)]

        stats = dashboard_stats(active, payments, "2025-05")

        assert stats.paid_this_month == 1
        assert stats.pending_this_month == 0

    def test_dashboard_empty(self):
        stats = dashboard_stats([], [], "2025-05")
        assert stats.payment_rate == 0
        assert stats.total_pending == 0

    def test_management(self, payments):
        participants = [Participant(1, "P001", "Ana"), Participant(2, "P002", "Luis", False)]
        stats = management_stats(participants, payments)
        assert stats.active_participants == 1
        assert stats.inactive_participants == 1
        assert stats.total_payments == 4
        assert stats.total_amount == 9000


class TestFormatting:
    @pytest.mark.parametrize(
        "amount,expected",
        [(3000, "$ 3.000"), (0, "$ 0"), (3000000, "$ 3.000.000"), (1499.6, "$ 1.500"),
         (-2500, "-$ 2.500")],
    )
    def test_currency(self, amount, expected):
        assert format_currency(amount) == expected

    def test_date(self):
        assert format_date("2025-03-05") == "5 de marzo de 2025"
        assert format_date("") == ""
        assert format_short_date("2025-03-05") == "05/03/2025"

    def test_month(self):
        assert format_month("2025-12") == "Diciembre 2025"
        assert format_month("2025-12", with_year=False) == "Diciembre"
        assert format_month("xx") == "xx"

"""Fixtures compartidas: pagos de prueba y hojas de cálculo en memoria."""

import pandas as pd
import pytest

import cuotas.repository as repository
from cuotas.models import PaymentRecord
from cuotas.repository import COLS_PAGOS, COLS_PARTICIPANTES, SheetsRepository


class FakeWorksheet:
    """Hoja en memoria con la misma interfaz que usa el repositorio."""

    def __init__(self, title, columns, rows=None):
        self.title = title
        self.columns = columns
        self.frame = pd.DataFrame(rows or [], columns=columns)
        self.append_calls = []

    def clear(self):
        self.frame = pd.DataFrame(columns=self.columns)

    def append_rows(self, rows, value_input_option=None):
        self.append_calls.append(value_input_option)
        new = pd.DataFrame(rows, columns=self.columns)
        if self.frame.empty:
            self.frame = new
        else:
            self.frame = pd.concat([self.frame, new], ignore_index=True)


@pytest.fixture
def fake_sheets(monkeypatch):
    """Reemplaza gspread_dataframe por lecturas/escrituras en memoria."""

    def fake_get_as_dataframe(sheet, **kwargs):
        return sheet.frame.copy()

    def fake_set_with_dataframe(sheet, df, **kwargs):
        sheet.frame = df.reset_index(drop=True).copy()

    monkeypatch.setattr(repository, "get_as_dataframe", fake_get_as_dataframe)
    monkeypatch.setattr(repository, "set_with_dataframe", fake_set_with_dataframe)

    participants = FakeWorksheet(
        "participantes",
        COLS_PARTICIPANTES,
        [
            [1, "P001", "Juan Pérez", True, 3000, "2025-01-02T10:00:00"],
            [2, "P002", "María García", "TRUE", 3000, "2025-01-02T10:00:00"],
            [3, "P003", "Carlos López", False, 3000, "2025-01-02T10:00:00"],
        ],
    )
    payments = FakeWorksheet(
        "pagos",
        COLS_PAGOS,
        [
            [1, 1, "2025-01", 3000, "2025-01-10", "100", "", "Admin", "2025-01-10T09:00:00"],
            [2, 1, "2025-02", 3000, "2025-02-10", "101", "", "Admin", "2025-02-10T09:00:00"],
            [3, 2, "2025-02", 1500, "2025-02-15", "102", "mitad", "Admin", "2025-02-15T09:00:00"],
            [4, 2, "2024-12", 3000, "2024-12-20", "90", "", "Admin", "2024-12-20T09:00:00"],
        ],
    )
    return participants, payments


@pytest.fixture
def repo(fake_sheets):
    participants, payments = fake_sheets
    return SheetsRepository(participants, payments)


@pytest.fixture
def make_payment():
    """Fábrica de PaymentRecord con valores por defecto razonables."""
    counter = {"id": 0}

    def _make(month, amount=3000, participant_id=1, code="P001", receipt="1",
              created_at="", payment_date="2025-01-10", observations=""):
        counter["id"] += 1
        return PaymentRecord(
            id=counter["id"],
            participant_id=participant_id,
            month=month,
            amount=amount,
            payment_date=payment_date,
            receipt_number=receipt,
            observations=observations,
            created_at=created_at,
            participant_code=code,
        )

    return _make

"""
Acceso a datos en Google Sheets (participantes y pagos).

Cada hoja tiene una fila de encabezados con las columnas de COLS_*; las
lecturas pasan por DataFrames de pandas y las escrituras reemplazan la
hoja completa o agregan filas al final.
"""

import re
from datetime import datetime

import gspread
import pandas as pd
from google.oauth2.service_account import Credentials
from gspread.exceptions import GSpreadException
from gspread_dataframe import get_as_dataframe, set_with_dataframe

from cuotas.config import require_service_account
from cuotas.errors import StoreError, ValidationError
from cuotas.logging_setup import get_logger
from cuotas.models import (
    MONTHLY_FEE,
    Participant,
    PaymentRecord,
    month_key,
    parse_month_key,
    parse_timestamp,
)

logger = get_logger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

COLS_PARTICIPANTES = ["id", "code", "full_name", "is_active", "monthly_fee", "created_at"]
COLS_PAGOS = [
    "id",
    "participant_id",
    "month",
    "amount",
    "payment_date",
    "receipt_number",
    "observations",
    "created_by",
    "created_at",
]

_TRUE_VALUES = {"true", "1", "si", "sí", "activo", "yes", "verdadero"}
_YEAR_RE = re.compile(r"\b\d{4}\b")


# ============================================================
# HELPERS DE DATAFRAME
# ============================================================

def ensure_columns(df, columns):
    for c in columns:
        if c not in df.columns:
            df[c] = ""
    return df[columns]


def to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_VALUES


def normalize_month(value) -> str:
    """
    Sheets a veces convierte '2025-03' en fecha; lo devolvemos a YYYY-MM.
    Si no se puede interpretar se deja tal cual.
    """
    text = str(value).strip()
    key = parse_month_key(text)
    if key is not None:
        return month_key(*key)
    # Solo textos con año completo; '3' no debe volverse el mes actual
    parsed = parse_timestamp(text) if _YEAR_RE.search(text) else None
    if parsed is None:
        return text
    return month_key(parsed.year, parsed.month)


def normalize_date(value) -> str:
    text = str(value).strip()
    parsed = parse_timestamp(text) if text else None
    if parsed is None:
        return text
    return parsed.strftime("%Y-%m-%d")


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def participant_from_row(row) -> Participant:
    return Participant(
        id=int(row["id"]),
        code=str(row["code"]).strip(),
        full_name=str(row["full_name"]).strip(),
        is_active=to_bool(row["is_active"]),
        monthly_fee=int(row["monthly_fee"] or MONTHLY_FEE),
        created_at=str(row["created_at"]),
    )


def payment_from_row(row, participants_by_id=None) -> PaymentRecord:
    participant = (participants_by_id or {}).get(int(row["participant_id"]))
    return PaymentRecord(
        id=int(row["id"]),
        participant_id=int(row["participant_id"]),
        month=normalize_month(row["month"]),
        amount=float(row["amount"]),
        payment_date=normalize_date(row["payment_date"]),
        receipt_number=str(row["receipt_number"]).strip(),
        observations=str(row["observations"]).strip(),
        created_by=str(row["created_by"]),
        created_at=str(row["created_at"]),
        participant_code=participant.code if participant else "",
        participant_name=participant.full_name if participant else "",
    )


# ============================================================
# REPOSITORIO
# ============================================================

class SheetsRepository:
    def __init__(self, participants_sheet, payments_sheet):
        self.sheet_participantes = participants_sheet
        self.sheet_pagos = payments_sheet

    @classmethod
    def from_settings(cls, settings):
        info = require_service_account(settings)
        try:
            creds = Credentials.from_service_account_info(info, scopes=SCOPES)
            client = gspread.authorize(creds)
            spreadsheet = client.open(settings.sheet_name)
            participants = spreadsheet.worksheet(settings.participants_worksheet)
            payments = spreadsheet.worksheet(settings.payments_worksheet)
        except GSpreadException as e:
            logger.error("No se pudo abrir la hoja %s: %s", settings.sheet_name, e)
            raise StoreError(f"No se pudo abrir la hoja '{settings.sheet_name}': {e}") from e
        except ValueError as e:
            raise StoreError(f"Cuenta de servicio inválida: {e}") from e
        logger.info("Conectado a Google Sheets: %s", settings.sheet_name)
        return cls(participants, payments)

    # ---------------- lectura / escritura base ----------------

    def _read(self, sheet, columns):
        # Todo como texto: recibos y códigos como "0045" no pasan por la
        # inferencia de pandas; las columnas numéricas se convierten aparte.
        try:
            df = get_as_dataframe(sheet, evaluate_formulas=True, header=0, dtype=str)
        except GSpreadException as e:
            logger.error("Error leyendo hoja %s: %s", getattr(sheet, "title", sheet), e)
            raise StoreError(f"Error al leer datos: {e}") from e
        df = df.dropna(how="all")
        if df.empty:
            return pd.DataFrame(columns=columns)
        df = ensure_columns(df.astype(object).fillna(""), columns)
        df["id"] = pd.to_numeric(df["id"], errors="coerce").fillna(0).astype(int)
        return df

    def _write(self, sheet, df, columns):
        try:
            sheet.clear()
            # set_with_dataframe escribe con USER_ENTERED: los textos van
            # escapados para que Sheets no convierta "0045" ni "2025-03"
            set_with_dataframe(sheet, ensure_columns(df, columns), string_escaping="full")
        except GSpreadException as e:
            logger.error("Error escribiendo hoja %s: %s", getattr(sheet, "title", sheet), e)
            raise StoreError(f"Error al guardar datos: {e}") from e

    def _append(self, sheet, rows):
        try:
            sheet.append_rows(rows, value_input_option="RAW")
        except GSpreadException as e:
            logger.error("Error agregando filas a %s: %s", getattr(sheet, "title", sheet), e)
            raise StoreError(f"Error al guardar datos: {e}") from e

    def load_participants(self):
        df = self._read(self.sheet_participantes, COLS_PARTICIPANTES)
        if not df.empty:
            df["monthly_fee"] = (
                pd.to_numeric(df["monthly_fee"], errors="coerce")
                .fillna(MONTHLY_FEE)
                .astype(int)
            )
        return df

    def load_payments(self):
        df = self._read(self.sheet_pagos, COLS_PAGOS)
        if not df.empty:
            df["participant_id"] = (
                pd.to_numeric(df["participant_id"], errors="coerce").fillna(0).astype(int)
            )
            df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0)
        return df

    # ---------------- participantes ----------------

    def fetch_participants(self, active=None):
        df = self.load_participants()
        participants = [participant_from_row(row) for _, row in df.iterrows()]
        if active is not None:
            participants = [p for p in participants if p.is_active == active]
        return sorted(participants, key=lambda p: p.code)

    def get_participant(self, participant_id):
        for p in self.fetch_participants():
            if p.id == int(participant_id):
                return p
        return None

    def _next_id(self, df) -> int:
        if df.empty:
            return 1
        return int(df["id"].max()) + 1

    def add_participants(self, entries, monthly_fee=MONTHLY_FEE):
        """
        entries: lista de (code, full_name). Falla si algún código ya existe
        en la hoja; no escribe nada en ese caso.
        """
        df = self.load_participants()
        existing = set(df["code"].astype(str).str.strip()) if not df.empty else set()
        repeated = [code for code, _ in entries if code in existing]
        if repeated:
            raise ValidationError(
                f"Los siguientes códigos ya existen: {', '.join(repeated)}"
            )

        new_id = self._next_id(df)
        created = now_iso()
        rows = []
        for offset, (code, full_name) in enumerate(entries):
            rows.append([new_id + offset, code, full_name, True, monthly_fee, created])

        self._append(self.sheet_participantes, rows)
        logger.info("Participantes agregados: %d", len(rows))
        return [row[0] for row in rows]

    def add_participant(self, code, full_name, is_active=True, monthly_fee=MONTHLY_FEE):
        new_id = self.add_participants([(code, full_name)], monthly_fee)[0]
        if not is_active:
            self.update_participant(new_id, code, full_name, is_active)
        return new_id

    def update_participant(self, participant_id, code, full_name, is_active):
        df = self.load_participants()
        mask = df["id"] == int(participant_id)
        if not mask.any():
            raise StoreError(f"Participante no encontrado: {participant_id}")

        others = df[~mask]
        if (others["code"].astype(str).str.strip() == code).any():
            raise ValidationError(f"El código {code} ya está asignado a otro participante")

        df.loc[mask, "code"] = code
        df.loc[mask, "full_name"] = full_name
        df.loc[mask, "is_active"] = bool(is_active)
        self._write(self.sheet_participantes, df, COLS_PARTICIPANTES)
        logger.info("Participante actualizado: %s", participant_id)

    def delete_participant(self, participant_id):
        """Borra el participante y sus pagos."""
        pid = int(participant_id)
        df = self.load_participants()
        if not (df["id"] == pid).any():
            raise StoreError(f"Participante no encontrado: {participant_id}")

        pagos = self.load_payments()
        if not pagos.empty and (pagos["participant_id"] == pid).any():
            removed = int((pagos["participant_id"] == pid).sum())
            self._write(self.sheet_pagos, pagos[pagos["participant_id"] != pid], COLS_PAGOS)
            logger.info("Pagos eliminados del participante %s: %d", pid, removed)

        self._write(self.sheet_participantes, df[df["id"] != pid], COLS_PARTICIPANTES)
        logger.info("Participante eliminado: %s", pid)

    # ---------------- pagos ----------------

    def fetch_payments(
        self,
        participant_id=None,
        participant_ids=None,
        month=None,
        year_prefix=None,
        date_range=None,
    ):
        df = self.load_payments()
        if df.empty:
            return []

        df["month"] = df["month"].map(normalize_month)
        df["payment_date"] = df["payment_date"].map(normalize_date)

        if participant_id is not None:
            df = df[df["participant_id"] == int(participant_id)]
        if participant_ids is not None:
            df = df[df["participant_id"].isin([int(i) for i in participant_ids])]
        if month:
            df = df[df["month"] == month]
        if year_prefix:
            df = df[df["month"].str.startswith(f"{year_prefix}-")]
        if date_range:
            start, end = date_range
            if start:
                df = df[df["payment_date"] >= str(start)]
            if end:
                df = df[df["payment_date"] <= str(end)]

        participants = {p.id: p for p in self.fetch_participants()}
        payments = [payment_from_row(row, participants) for _, row in df.iterrows()]
        # Más recientes primero
        payments.sort(key=lambda p: parse_timestamp(p.created_at) or datetime.min, reverse=True)
        return payments

    def add_payments(self, rows):
        """rows: dicts con las columnas de COLS_PAGOS salvo id y created_at."""
        if not rows:
            return []
        df = self.load_payments()
        new_id = self._next_id(df)
        created = now_iso()

        values = []
        for offset, row in enumerate(rows):
            record = dict(row, id=new_id + offset, created_at=created)
            values.append([record.get(c, "") for c in COLS_PAGOS])

        self._append(self.sheet_pagos, values)
        logger.info("Pagos registrados: %d", len(values))
        return [v[0] for v in values]

    def update_payment(self, payment_id, **fields):
        df = self.load_payments()
        mask = df["id"] == int(payment_id)
        if not mask.any():
            raise StoreError(f"Pago no encontrado: {payment_id}")
        for column, value in fields.items():
            if column not in COLS_PAGOS or column in ("id", "created_at"):
                raise ValueError(f"Columna no editable: {column}")
            df[column] = df[column].astype(object)
            df.loc[mask, column] = value
        self._write(self.sheet_pagos, df, COLS_PAGOS)
        logger.info("Pago actualizado: %s", payment_id)

    def delete_payment(self, payment_id):
        df = self.load_payments()
        mask = df["id"] == int(payment_id)
        if not mask.any():
            raise StoreError(f"Pago no encontrado: {payment_id}")
        self._write(self.sheet_pagos, df[~mask], COLS_PAGOS)
        logger.info("Pago eliminado: %s", payment_id)

    def reset(self):
        # Primero pagos, luego participantes
        self._write(self.sheet_pagos, pd.DataFrame(columns=COLS_PAGOS), COLS_PAGOS)
        self._write(
            self.sheet_participantes,
            pd.DataFrame(columns=COLS_PARTICIPANTES),
            COLS_PARTICIPANTES,
        )
        logger.warning("Base de datos reiniciada: participantes y pagos eliminados")

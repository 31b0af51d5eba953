"""
Reportes: filtros sobre pagos ya cargados y exportación a CSV.
"""

import csv
from datetime import date

import pandas as pd

from cuotas.formatting import format_month
from cuotas.reconcile import by_receipt, format_consecutive_months, group_by_key

REPORT_HEADERS = ["Fecha", "Participante", "Código", "Mes", "Monto", "Recibo"]
PARTICIPANTS_EXPORT_HEADERS = ["Código", "Nombre", "Cuota Mensual", "Estado", "Fecha Creación"]
PAYMENTS_EXPORT_HEADERS = ["Fecha", "Código Participante", "Nombre", "Mes", "Monto", "Recibo"]


def filter_payments(payments, start_date=None, end_date=None, participant_id=None, month=None):
    """Fechas en YYYY-MM-DD (inclusivas); month en YYYY-MM o prefijo."""
    result = []
    for p in payments:
        if start_date and p.payment_date < str(start_date):
            continue
        if end_date and p.payment_date > str(end_date):
            continue
        if participant_id is not None and p.participant_id != int(participant_id):
            continue
        if month and month not in p.month:
            continue
        result.append(p)
    return result


def report_summary(payments):
    return {
        "total_amount": sum(p.amount for p in payments),
        "total_payments": len(payments),
        "unique_participants": len({p.participant_id for p in payments}),
    }


def receipts_table(payments):
    """Una fila por recibo, con sus participantes y meses en texto compacto."""
    rows = []
    for group in group_by_key(payments, by_receipt):
        names = sorted({f"{p.participant_code} - {p.participant_name}" for p in group.payments})
        rows.append(
            {
                "Recibo": f"#{group.key}",
                "Participantes": "; ".join(names),
                "Meses": format_consecutive_months(group.payments),
                "Monto Total": group.total_amount,
                "Fecha Pago": group.payment_date,
                "Observaciones": group.observations or "-",
            }
        )
    return pd.DataFrame(
        rows,
        columns=["Recibo", "Participantes", "Meses", "Monto Total", "Fecha Pago", "Observaciones"],
    )


def payments_report_frame(payments):
    rows = [
        [
            p.payment_date,
            p.participant_name,
            p.participant_code,
            format_month(p.month),
            p.amount,
            p.receipt_number,
        ]
        for p in payments
    ]
    return pd.DataFrame(rows, columns=REPORT_HEADERS)


def participants_export_frame(participants):
    rows = [
        [
            p.code,
            p.full_name,
            p.monthly_fee,
            "Activo" if p.is_active else "Inactivo",
            p.created_at[:10],
        ]
        for p in participants
    ]
    return pd.DataFrame(rows, columns=PARTICIPANTS_EXPORT_HEADERS)


def payments_export_frame(payments):
    rows = [
        [p.payment_date, p.participant_code, p.participant_name, p.month, p.amount, p.receipt_number]
        for p in sorted(payments, key=lambda p: p.payment_date, reverse=True)
    ]
    return pd.DataFrame(rows, columns=PAYMENTS_EXPORT_HEADERS)


def to_csv_bytes(df) -> bytes:
    # Todas las celdas entre comillas
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL).encode("utf-8")


def export_filename(prefix, today=None) -> str:
    today = today or date.today()
    return f"{prefix}_{today.isoformat()}.csv"

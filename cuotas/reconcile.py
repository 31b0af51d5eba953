"""
Conciliación de meses pagados y agrupación de recibos.

Funciones puras sobre listas de PaymentRecord ya cargadas: no hacen I/O,
no modifican la lista de entrada ni guardan estado entre llamadas.
"""

from collections import OrderedDict
from datetime import datetime

from cuotas.models import (
    MONTHLY_FEE,
    GroupedPayment,
    MonthStatus,
    month_name,
    parse_timestamp,
)


# ============================================================
# ESTADO DE MESES (1..12) POR PARTICIPANTE
# ============================================================

def reconcile_months(year, payments, monthly_fee=MONTHLY_FEE) -> MonthStatus:
    """
    Mapa de 12 meses pagado/pendiente para un participante en `year`.

    Solo los pagos cuya clave de mes cae en `year` marcan meses y suman a
    total_paid; los de otros años o con clave inválida se ignoran.
    """
    year = int(year)
    month_map = OrderedDict((m, False) for m in range(1, 13))
    total_paid = 0

    for payment in payments:
        key = payment.month_key
        if key is None or key[0] != year:
            continue
        month_map[key[1]] = True
        total_paid += payment.amount

    paid_count = sum(1 for paid in month_map.values() if paid)
    unpaid_count = 12 - paid_count

    return MonthStatus(
        year=year,
        month_map=month_map,
        paid_count=paid_count,
        unpaid_count=unpaid_count,
        total_paid=total_paid,
        total_owed=unpaid_count * monthly_fee,
    )


def find_malformed_months(payments):
    """Pagos cuya clave de mes no se puede interpretar como YYYY-MM."""
    return [p for p in payments if p.month_key is None]


# ============================================================
# AGRUPACIÓN (POR PARTICIPANTE O POR RECIBO)
# ============================================================

def by_participant(payment) -> str:
    return str(payment.participant_id)


def by_receipt(payment) -> str:
    return str(payment.receipt_number)


def group_by_key(payments, key_fn):
    """
    Parte `payments` en grupos según `key_fn`. Cada pago cae en un solo
    grupo; los grupos salen del más reciente al más antiguo según el
    created_at de su último pago.
    """
    groups = OrderedDict()
    latest = {}

    for payment in payments:
        key = key_fn(payment)
        created = parse_timestamp(payment.created_at)

        group = groups.get(key)
        if group is None:
            group = GroupedPayment(key=key, payment_date=payment.payment_date)
            groups[key] = group
            latest[key] = created

        group.payments.append(payment)
        group.total_amount += payment.amount

        if not group.observations and (payment.observations or "").strip():
            group.observations = payment.observations.strip()

        # Fecha representativa: la del pago creado más recientemente
        if created is not None and (latest[key] is None or created > latest[key]):
            latest[key] = created
            group.payment_date = payment.payment_date

    for key, group in groups.items():
        group.created_at = latest[key]

    return sorted(
        groups.values(),
        key=lambda g: g.created_at or datetime.min,
        reverse=True,
    )


# ============================================================
# MESES CONSECUTIVOS EN TEXTO
# ============================================================

def _month_runs(keys):
    # keys ordenadas (año, mes) sin duplicados
    runs = []
    for year, month in keys:
        index = year * 12 + month - 1
        if runs and runs[-1][-1][2] == index - 1:
            runs[-1].append((year, month, index))
        else:
            runs.append([(year, month, index)])
    return runs


def _render_run(run) -> str:
    start_year, start_month, _ = run[0]
    end_year, end_month, _ = run[-1]

    if len(run) == 1:
        return f"{month_name(start_month)} {start_year}"

    separator = ", " if len(run) == 2 else " - "
    if start_year == end_year:
        return f"{month_name(start_month)}{separator}{month_name(end_month)} {end_year}"
    # Rango que cruza diciembre -> enero: año en ambos extremos
    return (
        f"{month_name(start_month)} {start_year}{separator}"
        f"{month_name(end_month)} {end_year}"
    )


def format_consecutive_months(payments) -> str:
    """
    Texto compacto con los meses pagados, p. ej. "Enero - Marzo 2025" o
    "P001: Mayo 2025 | P002: Junio, Julio 2025" con varios participantes.

    El prefijo "<código>: " depende de cuántos participantes trae la entrada,
    no de cuántos tienen meses válidos: un participante cuyos pagos tienen
    todos la clave mal formada no aparece, pero sigue activando el prefijo.
    """
    codes = set()
    by_code = {}
    for payment in payments:
        codes.add(payment.code)
        key = payment.month_key
        if key is None:
            continue
        by_code.setdefault(payment.code, set()).add(key)

    segments = []
    for code in sorted(by_code):
        runs = _month_runs(sorted(by_code[code]))
        segments.append((code, ", ".join(_render_run(run) for run in runs)))

    if len(codes) <= 1:
        return segments[0][1] if segments else ""
    return " | ".join(f"{code}: {text}" for code, text in segments)

"""
Registro de pagos: un recibo puede cubrir varios participantes y varios
meses; se guarda una fila por (participante, mes) con el monto repartido.
"""

from cuotas.errors import ValidationError
from cuotas.models import MONTHLY_FEE, month_key


def suggested_amount(num_participants, num_months, monthly_fee=MONTHLY_FEE) -> int:
    return monthly_fee * num_participants * num_months


def validate_payment_form(participant_ids, months, amount, payment_date, receipt_number):
    if not months:
        raise ValidationError("Debe seleccionar al menos un mes")
    if not participant_ids:
        raise ValidationError("Debe seleccionar al menos un participante")
    try:
        amount = float(amount)
    except (TypeError, ValueError) as e:
        raise ValidationError("El monto debe ser un número") from e
    if amount <= 0:
        raise ValidationError("El monto debe ser mayor que cero")
    if not str(payment_date or "").strip():
        raise ValidationError("La fecha de pago es obligatoria")
    if not str(receipt_number or "").strip():
        raise ValidationError("El número de recibo es obligatorio")
    bad = [m for m in months if not 1 <= int(m) <= 12]
    if bad:
        raise ValidationError(f"Mes inválido: {bad[0]}")
    return amount


def build_payment_rows(
    participant_ids,
    months,
    year,
    amount,
    payment_date,
    receipt_number,
    observations="",
    created_by="",
):
    """
    Filas a insertar para un recibo nuevo. El monto se reparte en partes
    iguales entre participantes x meses.
    """
    amount = validate_payment_form(
        participant_ids, months, amount, payment_date, receipt_number
    )
    months = sorted({int(m) for m in months})
    share = amount / (len(participant_ids) * len(months))

    rows = []
    for participant_id in participant_ids:
        for month in months:
            rows.append(
                {
                    "participant_id": int(participant_id),
                    "month": month_key(year, month),
                    "amount": share,
                    "payment_date": str(payment_date),
                    "receipt_number": str(receipt_number).strip(),
                    "observations": (observations or "").strip(),
                    "created_by": created_by,
                }
            )
    return rows


def build_payment_update(participant_id, month, year, amount, payment_date, receipt_number,
                         observations="", created_by=""):
    """Campos para editar un único pago (un participante, un mes)."""
    amount = validate_payment_form(
        [participant_id], [month], amount, payment_date, receipt_number
    )
    return {
        "participant_id": int(participant_id),
        "month": month_key(year, month),
        "amount": amount,
        "payment_date": str(payment_date),
        "receipt_number": str(receipt_number).strip(),
        "observations": (observations or "").strip(),
        "created_by": created_by,
    }


def paid_months(payments, year) -> set:
    """Meses de `year` que ya tienen algún pago entre los pagos dados."""
    result = set()
    for payment in payments:
        key = payment.month_key
        if key is not None and key[0] == int(year):
            result.add(key[1])
    return result

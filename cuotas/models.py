import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from dateutil.parser import parse as parse_date

# Cuota mensual fija (COP), igual para todos los participantes
MONTHLY_FEE = 3000

MONTH_NAMES = [
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
]

ROLE_ADMIN = "admin"
ROLE_TUTOR = "tutora"

_MONTH_KEY_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")


@dataclass
class Participant:
    id: int
    code: str
    full_name: str
    is_active: bool = True
    monthly_fee: int = MONTHLY_FEE
    created_at: str = ""


@dataclass
class PaymentRecord:
    id: int
    participant_id: int
    month: str
    amount: float
    payment_date: str = ""
    receipt_number: str = ""
    observations: str = ""
    created_by: str = ""
    created_at: str = ""
    # Datos del participante (join hecho por el repositorio)
    participant_code: str = ""
    participant_name: str = ""

    @property
    def month_key(self):
        return parse_month_key(self.month)

    @property
    def code(self) -> str:
        return self.participant_code or str(self.participant_id)


@dataclass
class MonthStatus:
    year: int
    month_map: dict = field(default_factory=dict)
    paid_count: int = 0
    unpaid_count: int = 12
    total_paid: float = 0
    total_owed: float = 0


@dataclass
class GroupedPayment:
    key: str
    payments: list = field(default_factory=list)
    total_amount: float = 0
    payment_date: str = ""
    observations: str = ""
    created_at: Optional[datetime] = None


def parse_month_key(value) -> Optional[tuple]:
    """
    'YYYY-MM' -> (año, mes). Devuelve None si el texto no es una clave
    de mes válida (mes fuera de 1..12 incluido).
    """
    if value is None:
        return None
    match = _MONTH_KEY_RE.match(str(value))
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month


def month_key(year: int, month: int) -> str:
    return f"{int(year)}-{int(month):02d}"


def month_name(month: int) -> str:
    return MONTH_NAMES[int(month) - 1]


def parse_timestamp(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_date(str(value))
    except (ValueError, OverflowError):
        return None
    # Comparamos siempre sin zona horaria
    return parsed.replace(tzinfo=None)

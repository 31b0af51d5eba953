"""
Configuración de la app de cuotas.

Prioridad (de mayor a menor):
1. Variables de entorno (CUOTAS_SHEET_NAME, CUOTAS_MONTHLY_FEE, CUOTAS_LOG_LEVEL)
2. Archivo .env en la raíz del proyecto
3. Secrets de Streamlit, tabla [cuotas]
4. Valores por defecto

La cuenta de servicio de Google y la tabla de usuarios vienen siempre de
los secrets de Streamlit ([gcp_service_account] y [[users]]).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from cuotas.errors import ConfigError
from cuotas.models import MONTHLY_FEE, ROLE_ADMIN, ROLE_TUTOR

DEFAULT_SHEET_NAME = "CuotasDB"
WORKSHEET_PARTICIPANTS = "participantes"
WORKSHEET_PAYMENTS = "pagos"

REQUIRED_ACCOUNT_FIELDS = {"type", "project_id", "private_key", "client_email"}


@dataclass
class Settings:
    sheet_name: str = DEFAULT_SHEET_NAME
    monthly_fee: int = MONTHLY_FEE
    log_level: str = "INFO"
    participants_worksheet: str = WORKSHEET_PARTICIPANTS
    payments_worksheet: str = WORKSHEET_PAYMENTS
    service_account_info: dict = field(default_factory=dict)
    users: list = field(default_factory=list)


def _section(secrets, name):
    if secrets is None:
        return None
    try:
        return secrets[name]
    except (KeyError, FileNotFoundError):
        # Streamlit lanza FileNotFoundError si no existe secrets.toml
        return None


def _parse_fee(raw) -> int:
    try:
        fee = int(str(raw).strip())
    except ValueError as e:
        raise ConfigError(f"Cuota mensual inválida: {raw!r}") from e
    if fee <= 0:
        raise ConfigError(f"La cuota mensual debe ser positiva: {fee}")
    return fee


def _parse_users(raw) -> list:
    users = []
    for entry in raw or []:
        entry = dict(entry)
        missing = {"username", "password", "role"} - set(entry)
        if missing:
            raise ConfigError(
                f"Usuario mal definido en secrets, faltan: {', '.join(sorted(missing))}"
            )
        if entry["role"] not in (ROLE_ADMIN, ROLE_TUTOR):
            raise ConfigError(
                f"Rol desconocido para {entry['username']}: {entry['role']!r}"
            )
        users.append(
            {
                "username": str(entry["username"]),
                "password": str(entry["password"]),
                "role": entry["role"],
                "full_name": str(entry.get("full_name", entry["username"])),
            }
        )
    return users


def load_settings(secrets=None, env_file=".env") -> Settings:
    """
    Lee la configuración. `secrets` es st.secrets (o cualquier mapping con
    la misma forma); None permite usar solo entorno y defaults.

    Raises:
        ConfigError: cuota inválida o usuarios mal definidos
    """
    env_path = Path(env_file)
    if env_path.exists():
        load_dotenv(env_path)

    app_section = dict(_section(secrets, "cuotas") or {})

    sheet_name = os.getenv("CUOTAS_SHEET_NAME") or app_section.get(
        "sheet_name", DEFAULT_SHEET_NAME
    )
    fee_raw = os.getenv("CUOTAS_MONTHLY_FEE") or app_section.get(
        "monthly_fee", MONTHLY_FEE
    )
    log_level = os.getenv("CUOTAS_LOG_LEVEL") or app_section.get("log_level", "INFO")

    account = _section(secrets, "gcp_service_account")

    return Settings(
        sheet_name=str(sheet_name),
        monthly_fee=_parse_fee(fee_raw),
        log_level=str(log_level).upper(),
        participants_worksheet=app_section.get(
            "participants_worksheet", WORKSHEET_PARTICIPANTS
        ),
        payments_worksheet=app_section.get("payments_worksheet", WORKSHEET_PAYMENTS),
        service_account_info=dict(account) if account else {},
        users=_parse_users(_section(secrets, "users")),
    )


def require_service_account(settings: Settings) -> dict:
    info = settings.service_account_info
    if not info:
        raise ConfigError(
            "Falta [gcp_service_account] en .streamlit/secrets.toml"
        )
    missing = REQUIRED_ACCOUNT_FIELDS - set(info)
    if missing:
        raise ConfigError(
            f"Cuenta de servicio incompleta, faltan: {', '.join(sorted(missing))}"
        )
    return info

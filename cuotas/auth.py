"""
Autenticación por tabla de usuarios y sesión del usuario conectado.

La tabla de credenciales se inyecta al arrancar (viene de los secrets);
la sesión vive en un mapping mutable, st.session_state en la app.
"""

from dataclasses import asdict, dataclass

from cuotas.errors import AuthError, ConfigError
from cuotas.logging_setup import get_logger
from cuotas.models import ROLE_ADMIN, ROLE_TUTOR

logger = get_logger(__name__)

SESSION_KEY = "current_user"


@dataclass(frozen=True)
class UserSession:
    username: str
    full_name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_tutor(self) -> bool:
        return self.role == ROLE_TUTOR

    @property
    def email(self) -> str:
        return f"{self.username}@cdi660.com"


class CredentialTable:
    """Proveedor de autenticación sobre una lista fija de usuarios."""

    def __init__(self, users):
        if not users:
            raise ConfigError("No hay usuarios configurados ([[users]] en secrets)")
        self._users = list(users)

    def authenticate(self, username, password) -> UserSession:
        name = (username or "").strip().lower()
        for user in self._users:
            if user["username"].lower() == name and user["password"] == password:
                return UserSession(
                    username=user["username"],
                    full_name=user.get("full_name", user["username"]),
                    role=user["role"],
                )
        logger.info("Intento de acceso fallido para %r", username)
        raise AuthError("Usuario o contraseña incorrectos")


# ============================================================
# SESIÓN (init / sign in / sign out)
# ============================================================

def init_session(state) -> None:
    """Deja la clave de sesión presente; no toca una sesión ya iniciada."""
    if SESSION_KEY not in state:
        state[SESSION_KEY] = None


def sign_in(state, provider, username, password) -> UserSession:
    session = provider.authenticate(username, password)
    state[SESSION_KEY] = asdict(session)
    logger.info("Sesión iniciada: %s (%s)", session.username, session.role)
    return session


def current_session(state):
    data = state.get(SESSION_KEY)
    if not data:
        return None
    try:
        return UserSession(**data)
    except TypeError:
        # Sesión guardada con otra forma: se descarta
        logger.warning("Sesión inválida en estado, se limpia")
        state[SESSION_KEY] = None
        return None


def sign_out(state) -> None:
    data = state.get(SESSION_KEY)
    if data:
        logger.info("Sesión cerrada: %s", data.get("username"))
    state[SESSION_KEY] = None

"""Excepciones de la aplicación de cuotas."""


class CuotasError(Exception):
    """Error base de la aplicación."""

    pass


class ConfigError(CuotasError):
    """Configuración ausente o inválida (secrets, variables de entorno)."""

    pass


class AuthError(CuotasError):
    """Credenciales incorrectas o sesión inexistente."""

    pass


class StoreError(CuotasError):
    """Fallo al leer o escribir en Google Sheets."""

    pass


class ValidationError(CuotasError):
    """Datos de formulario o de carga masiva inválidos."""

    pass

"""Configuración centralizada de logging para el paquete ``cuotas``.

- ``configure_logging(...)``: agrega un único ``StreamHandler`` al logger
  raíz del paquete. Lo llama la app de Streamlit una vez al arrancar.
- ``get_logger(name)``: logger por nombre; si nadie configuró logging aún,
  el logger del paquete lleva un ``NullHandler``.

Los módulos nunca agregan handlers propios.
"""

import logging
import os
import sys

_PKG_LOGGER_NAME = "cuotas"
_CONFIGURED = False

DEFAULT_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"


def _parse_level(level) -> int:
    if level is None:
        # Sin nivel explícito manda CUOTAS_LOG_LEVEL
        level = os.getenv("CUOTAS_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    level = str(level).strip().upper()
    if level.isdigit():
        return int(level)
    numeric = getattr(logging, level, None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def configure_logging(level=None, *, fmt=None, stream=sys.stderr) -> None:
    """Configura el logger del paquete una sola vez por proceso.

    Streamlit vuelve a ejecutar el script en cada interacción, por eso la
    segunda llamada y las siguientes no hacen nada.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setLevel(_parse_level(level))
    handler.setFormatter(
        logging.Formatter(fmt or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    logger.setLevel(_parse_level(level))
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)

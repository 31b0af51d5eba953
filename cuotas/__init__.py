"""Seguimiento de cuotas mensuales: participantes, pagos y reportes."""

__version__ = "0.1.0"

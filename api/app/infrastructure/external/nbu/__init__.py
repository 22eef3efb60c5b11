"""Cliente del API público de tipos de cambio del Banco Nacional de Ucrania."""

from .nbu_client import NbuClient, NbuRate

__all__ = ["NbuClient", "NbuRate"]

"""Integración con el gateway de la aduana (declaraciones 60.1 / 61.1)."""

from .gateway_client import (
    CustomsGatewayClient,
    CustomsGatewayError,
    DeclarationDetailsResult,
    DeclarationListResult,
    DeclarationSource,
)

__all__ = [
    "CustomsGatewayClient",
    "CustomsGatewayError",
    "DeclarationDetailsResult",
    "DeclarationListResult",
    "DeclarationSource",
]

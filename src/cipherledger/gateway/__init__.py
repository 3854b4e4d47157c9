"""
Ciphertext gateways for CipherLedger.

Configuration via environment:
    CIPHERLEDGER_GATEWAY=local  # or 'relayer'
    CIPHERLEDGER_RELAYER_URL=https://relayer.example.com/v1
"""

from __future__ import annotations

from cipherledger.core.config import Config
from cipherledger.core.exceptions import ConfigurationError
from cipherledger.gateway.base import (
    PUBLIC_SCOPE,
    CiphertextGateway,
    get_gateway_class,
    list_gateways,
    register_gateway,
)
from cipherledger.gateway.local import LocalGateway
from cipherledger.gateway.relayer import RelayerGateway


def get_gateway(config: Config) -> CiphertextGateway:
    """
    Build the gateway named by ``config.gateway``.

    Raises:
        ConfigurationError: If the gateway name is unknown
    """
    gateway_class = get_gateway_class(config.gateway)
    if gateway_class is None:
        raise ConfigurationError(
            f"Unknown gateway: '{config.gateway}'. Available: {', '.join(list_gateways())}"
        )

    if gateway_class is RelayerGateway:
        return RelayerGateway(
            config.relayer_url,  # type: ignore[arg-type]
            timeout=config.http_timeout,
            retries=config.http_retries,
        )
    if gateway_class is LocalGateway:
        return LocalGateway(amount_bits=config.amount_bits)
    return gateway_class()


__all__ = [
    "PUBLIC_SCOPE",
    "CiphertextGateway",
    "LocalGateway",
    "RelayerGateway",
    "get_gateway",
    "get_gateway_class",
    "list_gateways",
    "register_gateway",
]

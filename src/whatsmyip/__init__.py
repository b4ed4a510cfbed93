"""Find out your external IP address, using

1. the Internet Gateway Device protocol (UPnP IGD)
2. public HTTP services echoing the caller's address

Usage::

    from whatsmyip import whatsmyip
    addr = whatsmyip()

Use `WhatsMyIp` for additional options, e.g. to disable the use of IGD::

    from whatsmyip import WhatsMyIp
    addrs = WhatsMyIp().use_gateway(False).find()
"""
from .core.address import IPAddress, parse_address
from .core.exceptions import (
    AddressNotFoundError,
    AddressParseError,
    GatewayError,
    TransportError,
    WhatsMyIpError,
)
from .core.providers import HTTP_PROVIDERS, Provider
from .services.discovery_service import DiscoveryEngine, DiscoveryOptions, WhatsMyIp, whatsmyip


__all__ = [
    "AddressNotFoundError",
    "AddressParseError",
    "DiscoveryEngine",
    "DiscoveryOptions",
    "GatewayError",
    "HTTP_PROVIDERS",
    "IPAddress",
    "Provider",
    "TransportError",
    "WhatsMyIp",
    "WhatsMyIpError",
    "parse_address",
    "whatsmyip",
]

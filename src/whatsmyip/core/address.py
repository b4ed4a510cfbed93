from ipaddress import IPv4Address, IPv6Address, AddressValueError
from typing import Union

from .exceptions import AddressParseError


IPAddress = Union[IPv4Address, IPv6Address]


def parse_address(text: str) -> IPAddress:
    """Parses a textual IP address, trying IPv4 first and IPv6 second.

    Surrounding whitespace is ignored. No filtering of private, loopback
    or reserved ranges is done.

    Args:
        text: Raw text, e.g. the body returned by an HTTP provider.

    Returns:
        IPv4Address or IPv6Address.

    Raises:
        AddressParseError: If the text is neither a valid IPv4 nor IPv6 address.
    """
    trimmed = text.strip()

    try:
        return IPv4Address(trimmed)
    except AddressValueError:
        pass

    try:
        return IPv6Address(trimmed)
    except AddressValueError:
        raise AddressParseError(text)

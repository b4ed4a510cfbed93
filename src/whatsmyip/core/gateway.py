import http.client
import logging
import re
import socket
import time
import urllib.error
import urllib.request
from ipaddress import IPv4Address, AddressValueError
from typing import Callable, Optional, Tuple
from urllib.parse import urljoin, urlparse
from xml.etree import ElementTree

from .exceptions import GatewayError


logger = logging.getLogger(__name__)

SSDP_ADDR = ("239.255.255.250", 1900)
IGD_DEVICE_TYPE = "urn:schemas-upnp-org:device:InternetGatewayDevice:1"
WAN_SERVICE_TYPES = (
    "urn:schemas-upnp-org:service:WANIPConnection:1",
    "urn:schemas-upnp-org:service:WANPPPConnection:1",
)
DEVICE_NS = "{urn:schemas-upnp-org:device-1-0}"


def _require_http(url: str) -> None:
    """Rejects URLs handed out by the router that are not plain HTTP(S)."""
    if urlparse(url).scheme.lower() not in ("http", "https"):
        raise GatewayError(f"Refusing non-HTTP gateway URL: {url!r}")


class Gateway:
    """A UPnP Internet Gateway Device found on the local network."""

    def __init__(self, control_url: str, service_type: str, timeout: float = 2.0):
        """Initializes the gateway handle.

        Args:
            control_url: Absolute URL of the WAN connection service control point.
            service_type: The WAN connection service type (IP or PPP).
            timeout: HTTP timeout in seconds for SOAP requests.
        """
        self.control_url = control_url
        self.service_type = service_type
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"Gateway({self.control_url!r})"

    def get_external_ip(self) -> IPv4Address:
        """Queries the router for the external address it holds.

        Raises:
            GatewayError: If the SOAP call fails or returns no IPv4 address.
        """
        action = "GetExternalIPAddress"
        envelope = (
            '<?xml version="1.0"?>'
            '<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/" '
            's:encodingStyle="http://schemas.xmlsoap.org/soap/encoding/">'
            f'<s:Body><u:{action} xmlns:u="{self.service_type}"/></s:Body>'
            '</s:Envelope>'
        ).encode('utf-8')

        request = urllib.request.Request(
            self.control_url,
            data=envelope,
            headers={
                "Content-Type": 'text/xml; charset="utf-8"',
                "SOAPAction": f'"{self.service_type}#{action}"',
            },
            method="POST"
        )

        _require_http(self.control_url)

        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                payload = response.read()
        except urllib.error.HTTPError as e:
            raise GatewayError(f"{action} failed with HTTP status {e.code}")
        except (OSError, http.client.HTTPException) as e:
            raise GatewayError(f"{action} request failed: {e}")

        try:
            root = ElementTree.fromstring(payload)
        except ElementTree.ParseError as e:
            raise GatewayError(f"Malformed SOAP response: {e}")

        # The response element is namespaced by service, the argument is not.
        node = next(
            (el for el in root.iter() if el.tag.rsplit('}', 1)[-1] == "NewExternalIPAddress"),
            None
        )
        if node is None or not (node.text or "").strip():
            raise GatewayError("Gateway did not report an external address.")

        try:
            return IPv4Address(node.text.strip())
        except AddressValueError:
            raise GatewayError(f"Gateway reported an invalid IPv4 address: {node.text!r}")


def _ssdp_search(timeout: float) -> str:
    """Broadcasts an M-SEARCH for IGD devices and returns the first LOCATION."""
    msg = "\r\n".join([
        "M-SEARCH * HTTP/1.1",
        f"HOST: {SSDP_ADDR[0]}:{SSDP_ADDR[1]}",
        'MAN: "ssdp:discover"',
        f"MX: {max(1, int(timeout))}",
        f"ST: {IGD_DEVICE_TYPE}",
        "", ""
    ]).encode()

    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
        sock.sendto(msg, SSDP_ADDR)

        end = time.monotonic() + timeout
        while True:
            remaining = end - time.monotonic()
            if remaining <= 0:
                break
            sock.settimeout(remaining)

            try:
                data, addr = sock.recvfrom(2048)
            except socket.timeout:
                break

            txt = data.decode(errors="ignore")
            match = re.search(r"(?i)^location:\s*(.+)$", txt, re.M)
            if match:
                location = match.group(1).strip()
                logger.debug("SSDP reply from %s: %s", addr[0], location)
                return location
    except OSError as e:
        raise GatewayError(f"SSDP search failed: {e}")
    finally:
        sock.close()

    raise GatewayError("No IGD device answered the SSDP search.")


def _find_control_url(location: str, description: bytes) -> Tuple[str, str]:
    """Locates the WAN connection service in a device description document.

    Returns:
        Tuple of (absolute control URL, service type).
    """
    try:
        root = ElementTree.fromstring(description)
    except ElementTree.ParseError as e:
        raise GatewayError(f"Malformed device description at {location}: {e}")

    base = root.findtext(f"{DEVICE_NS}URLBase") or location

    for service in root.iter(f"{DEVICE_NS}service"):
        service_type = (service.findtext(f"{DEVICE_NS}serviceType") or "").strip()
        if service_type in WAN_SERVICE_TYPES:
            control = (service.findtext(f"{DEVICE_NS}controlURL") or "").strip()
            if control:
                return urljoin(base.strip(), control), service_type

    raise GatewayError(f"No WAN connection service described at {location}")


def search_gateway(timeout: float = 2.0) -> Gateway:
    """Discovers the IGD router on the local network.

    Args:
        timeout: Seconds to wait for SSDP replies, also used as HTTP timeout
            when fetching the device description.

    Returns:
        A Gateway handle ready to be queried.

    Raises:
        GatewayError: If no router answers or its description is unusable.
    """
    location = _ssdp_search(timeout)
    _require_http(location)

    try:
        with urllib.request.urlopen(location, timeout=timeout) as response:
            description = response.read()
    except (OSError, ValueError, http.client.HTTPException) as e:
        raise GatewayError(f"Failed to fetch device description {location}: {e}")

    control_url, service_type = _find_control_url(location, description)
    return Gateway(control_url, service_type, timeout=timeout)


GatewaySearch = Callable[[float], Gateway]


def lookup_gateway_address(
    search: GatewaySearch = search_gateway,
    timeout: float = 2.0
) -> Optional[IPv4Address]:
    """Asks the local router for its external address.

    Failures are logged and reported as None, never raised.
    """
    try:
        gateway = search(timeout)
    except GatewayError as e:
        logger.info("Unable to find gateway: %s", e)
        return None

    try:
        ip = gateway.get_external_ip()
    except GatewayError as e:
        logger.info("Unable to query gateway %r: %s", gateway, e)
        return None

    logger.debug("IGD => %s", ip)
    return ip

import http.client
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Callable, Optional

from .address import IPAddress
from .exceptions import TransportError
from .probe_factory import get_handler
from .providers import Provider


logger = logging.getLogger(__name__)

USER_AGENT = "whatsmyip"


@dataclass(frozen=True)
class HttpResponse:
    """Status line and raw body of a finished HTTP request."""
    status: int
    body: bytes


HttpTransport = Callable[[str, Optional[float]], HttpResponse]


def http_get(url: str, timeout: Optional[float] = None) -> HttpResponse:
    """Issues a GET request and reads the full body.

    Error statuses are returned, not raised, so the caller decides what
    counts as success.

    Args:
        url: The URL to fetch.
        timeout: Socket timeout in seconds for connect, read and write.
            None blocks with no deadline.

    Raises:
        OSError: On connection failures and timeouts (URLError included).
        http.client.HTTPException: On malformed status lines or truncated bodies.
    """
    request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    kwargs = {} if timeout is None else {"timeout": timeout}

    try:
        with urllib.request.urlopen(request, **kwargs) as response:
            return HttpResponse(status=response.status, body=response.read())
    except urllib.error.HTTPError as e:
        return HttpResponse(status=e.code, body=e.read() or b"")


def probe_provider(
    provider: Provider,
    timeout: Optional[float] = None,
    transport: HttpTransport = http_get
) -> IPAddress:
    """Asks one HTTP provider for the caller's address.

    Args:
        provider: Registry entry to query.
        timeout: Per-request read/write timeout in seconds, or None.
        transport: Callable performing the GET.

    Returns:
        The address reported by the provider.

    Raises:
        TransportError: On I/O failures or a status other than 200 OK.
        AddressParseError: If the body holds no valid address.
    """
    try:
        response = transport(provider.url, timeout)
    except (OSError, http.client.HTTPException) as e:
        raise TransportError(provider.url, cause=e) from e

    if response.status != 200:
        raise TransportError(provider.url, status=response.status)

    body = response.body.decode('utf-8', errors='replace')
    logger.debug("%s => %s", provider.url, body.strip())

    return get_handler(provider.kind).extract_address(body)

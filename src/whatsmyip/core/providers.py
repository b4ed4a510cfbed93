from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Provider:
    """An HTTP endpoint echoing the caller's address.

    Attributes:
        url: The URL to GET.
        kind: Behavior tag selecting how the body is read (see probe_factory).
    """
    url: str
    kind: str = "plain"


HTTP_PROVIDERS: Tuple[Provider, ...] = (
    Provider("http://icanhazip.com"),
    Provider("http://myip.dnsomatic.com"),
    Provider("https://api.ipify.org?format=text"),
    Provider("https://checkip.amazonaws.com"),
    Provider("https://ifconfig.me/ip"),
    Provider("https://1.1.1.1/cdn-cgi/trace", "cloudflare"),
)

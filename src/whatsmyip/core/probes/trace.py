from .base import ProbeHandler
from ..address import IPAddress, parse_address
from ..exceptions import AddressParseError


class CloudflareTraceHandler(ProbeHandler):
    """Reads the `ip=` line of a Cloudflare `/cdn-cgi/trace` response.

    The body is a list of `key=value` lines, e.g.::

        fl=123abc
        h=1.1.1.1
        ip=203.0.113.5
        ts=1700000000.0
    """

    @property
    def kind(self) -> str:
        return "cloudflare"

    def extract_address(self, body: str) -> IPAddress:
        for line in body.splitlines():
            key, sep, value = line.strip().partition('=')
            if sep and key == 'ip':
                return parse_address(value)

        raise AddressParseError(body)

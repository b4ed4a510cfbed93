from .base import ProbeHandler
from ..address import IPAddress, parse_address


class PlainTextHandler(ProbeHandler):
    """The whole body is the address, possibly padded with whitespace."""

    @property
    def kind(self) -> str:
        return "plain"

    def extract_address(self, body: str) -> IPAddress:
        return parse_address(body)

import random
from typing import Dict, List, Union

import pytest

from whatsmyip.core.exceptions import GatewayError
from whatsmyip.core.network import HttpResponse
from whatsmyip.core.providers import Provider


class FakeTransport:
    """Stands in for http_get: maps URLs to canned responses or exceptions."""

    def __init__(self, responses: Dict[str, Union[HttpResponse, Exception]]):
        self.responses = responses
        self.calls: List[str] = []
        self.timeouts: List[object] = []

    def __call__(self, url, timeout=None):
        self.calls.append(url)
        self.timeouts.append(timeout)
        outcome = self.responses.get(url, OSError("connection refused"))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeGateway:
    def __init__(self, ip=None, error=None):
        self.ip = ip
        self.error = error
        self.queries = 0

    def get_external_ip(self):
        self.queries += 1
        if self.error:
            raise self.error
        return self.ip


class FakeGatewaySearch:
    """Stands in for search_gateway."""

    def __init__(self, gateway=None, error=None):
        self.gateway = gateway
        self.error = error
        self.calls = 0

    def __call__(self, timeout=2.0):
        self.calls += 1
        if self.gateway is None:
            raise self.error or GatewayError("No IGD device answered the SSDP search.")
        return self.gateway


class NoShuffle(random.Random):
    """Random source keeping the registry order."""

    def shuffle(self, x, *args, **kwargs):
        pass


class ReverseShuffle(random.Random):
    def shuffle(self, x, *args, **kwargs):
        x.reverse()


def ok(body: str) -> HttpResponse:
    return HttpResponse(status=200, body=body.encode("utf-8"))


@pytest.fixture
def providers():
    return [
        Provider("http://a.example"),
        Provider("http://b.example"),
        Provider("http://c.example"),
        Provider("http://d.example"),
    ]

import logging
import random
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, field_validator

from ..core.address import IPAddress
from ..core.exceptions import AddressNotFoundError, GatewayError, WhatsMyIpError
from ..core.gateway import GatewaySearch, lookup_gateway_address, search_gateway
from ..core.network import HttpTransport, http_get, probe_provider
from ..core.providers import HTTP_PROVIDERS, Provider


logger = logging.getLogger(__name__)


def _clamp_limit(count: Optional[int]) -> Optional[int]:
    if count is None:
        return None
    return max(0, min(int(count), len(HTTP_PROVIDERS)))


def _normalize_timeout(value: Union[None, float, timedelta]) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, timedelta):
        value = value.total_seconds()
    return float(value) if value > 0 else None


class DiscoveryOptions(BaseModel):
    """Immutable settings for a single discovery run.

    Attributes:
        use_gateway: Ask the local IGD router first.
        fast: Return as soon as one source yields an address.
        http_limit: How many HTTP providers to consult, clamped to the registry
            size; None consults all of them.
        http_timeout: Per-request read/write timeout in seconds; None blocks.
        gateway_timeout: SSDP search window and IGD request timeout in seconds.
    """
    model_config = ConfigDict(frozen=True)

    use_gateway: bool = True
    fast: bool = False
    http_limit: Optional[int] = None
    http_timeout: Optional[float] = None
    gateway_timeout: float = 2.0

    @field_validator("http_limit", mode="before")
    @classmethod
    def clamp_http_limit(cls, v: Optional[int]) -> Optional[int]:
        """Clamps the limit into [0, number of providers]; None means all."""
        return _clamp_limit(v)

    @field_validator("http_timeout", mode="before")
    @classmethod
    def normalize_http_timeout(cls, v: Union[None, float, timedelta]) -> Optional[float]:
        """Accepts seconds or a timedelta; non-positive values disable the timeout."""
        return _normalize_timeout(v)

    @field_validator("gateway_timeout", mode="before")
    @classmethod
    def normalize_gateway_timeout(cls, v: Union[float, timedelta]) -> float:
        return _normalize_timeout(v) or 2.0


@dataclass(frozen=True)
class ProbeReport:
    """Outcome of probing one source during a health check."""
    source: str
    address: Optional[IPAddress]
    error: Optional[str]
    elapsed: float

    @property
    def ok(self) -> bool:
        return self.address is not None


class DiscoveryEngine:
    """Runs the gateway and HTTP strategies and aggregates their addresses.

    The engine holds no per-call state, so one instance may serve
    concurrent `find()` calls.
    """

    def __init__(
        self,
        providers: Sequence[Provider] = HTTP_PROVIDERS,
        transport: HttpTransport = http_get,
        gateway_search: GatewaySearch = search_gateway,
        rng_factory: Callable[[], random.Random] = random.SystemRandom
    ):
        """Initializes the engine with its collaborators.

        Args:
            providers: Registry of HTTP providers, in natural order.
            transport: Callable performing HTTP GETs.
            gateway_search: Callable discovering the IGD router.
            rng_factory: Builds a fresh random source for each shuffle.
        """
        self.providers = tuple(providers)
        self.transport = transport
        self.gateway_search = gateway_search
        self.rng_factory = rng_factory

    def _shuffled_providers(self) -> List[Provider]:
        providers = list(self.providers)

        try:
            rng = self.rng_factory()
        except (NotImplementedError, OSError) as e:
            logger.debug("No random source available (%s), using registry order", e)
            return providers

        rng.shuffle(providers)
        return providers

    def find(self, options: Optional[DiscoveryOptions] = None) -> List[IPAddress]:
        """Returns the external addresses found, with no repeated entries.

        Sources are tried in this order:

        1. Internet Gateway Device protocol (if enabled)
        2. a random subset of `options.http_limit` HTTP providers

        With `options.fast` the call returns after the first address.

        Raises:
            AddressNotFoundError: If no enabled source produced an address.
        """
        options = options or DiscoveryOptions()
        results: List[IPAddress] = []

        if options.use_gateway:
            ip = lookup_gateway_address(self.gateway_search, options.gateway_timeout)
            if ip is not None:
                results.append(ip)
                if options.fast:
                    return results

        limit = len(self.providers)
        if options.http_limit is not None:
            limit = min(options.http_limit, limit)
        if limit > 0:
            for provider in self._shuffled_providers()[:limit]:
                try:
                    ip = probe_provider(provider, options.http_timeout, self.transport)
                except WhatsMyIpError as e:
                    logger.info("%s => %s", provider.url, e)
                    continue

                if ip not in results:
                    results.append(ip)
                if options.fast:
                    return results

        if not results:
            raise AddressNotFoundError()

        return results

    def check(self, options: Optional[DiscoveryOptions] = None) -> List[ProbeReport]:
        """Probes the gateway (if enabled) and every provider, reporting each outcome.

        Providers are visited in registry order and failures never stop the run.
        """
        options = options or DiscoveryOptions()
        reports: List[ProbeReport] = []

        if options.use_gateway:
            started = time.monotonic()
            try:
                gateway = self.gateway_search(options.gateway_timeout)
                address = gateway.get_external_ip()
                error = None
            except GatewayError as e:
                address, error = None, str(e)
            reports.append(ProbeReport("igd", address, error, time.monotonic() - started))

        for provider in self.providers:
            started = time.monotonic()
            try:
                address = probe_provider(provider, options.http_timeout, self.transport)
                error = None
            except WhatsMyIpError as e:
                address, error = None, str(e)
            reports.append(ProbeReport(provider.url, address, error, time.monotonic() - started))

        return reports


class WhatsMyIp:
    """Fluent builder for discovery runs.

    Example:
        addrs = WhatsMyIp().use_gateway(False).http_limit(2).find()
    """

    def __init__(self, engine: Optional[DiscoveryEngine] = None):
        self.engine = engine or DiscoveryEngine()
        self._values = {}

    def use_gateway(self, enabled: bool) -> "WhatsMyIp":
        """Enable/disable the Internet Gateway Device lookup (defaults to True)."""
        self._values["use_gateway"] = enabled
        return self

    def fast(self, enabled: bool) -> "WhatsMyIp":
        """Stop at the first address found instead of trying every source (defaults to False)."""
        self._values["fast"] = enabled
        return self

    def http_limit(self, count: Optional[int]) -> "WhatsMyIp":
        """Limit the number of HTTP providers consulted; None means all."""
        self._values["http_limit"] = count
        return self

    def http_timeout(self, timeout: Union[None, float, timedelta]) -> "WhatsMyIp":
        """Per-provider read/write timeout; None blocks with no deadline."""
        self._values["http_timeout"] = timeout
        return self

    def gateway_timeout(self, timeout: Union[float, timedelta]) -> "WhatsMyIp":
        self._values["gateway_timeout"] = timeout
        return self

    @property
    def options(self) -> DiscoveryOptions:
        """Snapshot of the current settings."""
        return DiscoveryOptions(**self._values)

    def find(self) -> List[IPAddress]:
        """Runs discovery with the current settings. See DiscoveryEngine.find."""
        return self.engine.find(self.options)

    def first(self) -> IPAddress:
        """Runs discovery in fast mode and returns the single address found."""
        addrs = self.engine.find(DiscoveryOptions(**{**self._values, "fast": True}))
        return addrs.pop()


def whatsmyip(engine: Optional[DiscoveryEngine] = None) -> IPAddress:
    """Returns the first external IP address that can be found.

    Raises:
        AddressNotFoundError: If every source failed.
    """
    return WhatsMyIp(engine).first()

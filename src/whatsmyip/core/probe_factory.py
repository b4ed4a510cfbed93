from typing import Dict, Type

from .probes.base import ProbeHandler
from .probes.plain import PlainTextHandler
from .probes.trace import CloudflareTraceHandler


STRATEGIES: Dict[str, Type[ProbeHandler]] = {
    "plain": PlainTextHandler,
    "cloudflare": CloudflareTraceHandler,
}

def get_handler(kind: str) -> ProbeHandler:
    """Factory function to get the probe handler for a provider tag.

    Args:
        kind: The provider behavior tag (e.g., 'plain').

    Returns:
        An instance of the concrete ProbeHandler.

    Raises:
        ValueError: If the tag is not supported.
    """
    handler_class = STRATEGIES.get(kind)
    if not handler_class:
        raise ValueError(f"Unsupported provider kind: {kind!r}")

    return handler_class()

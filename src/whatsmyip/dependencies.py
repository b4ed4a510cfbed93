from .config.settings import Settings, load_settings
from .services.discovery_service import DiscoveryEngine


def get_settings() -> Settings:
    """Loads settings from the environment and the .env file."""
    return load_settings()


def get_discovery_engine() -> DiscoveryEngine:
    """Creates and returns a DiscoveryEngine wired to the real network."""
    return DiscoveryEngine()
from abc import ABC, abstractmethod

from ..address import IPAddress


class ProbeHandler(ABC):
    """Abstract base class for reading an address out of a provider response.

    Each registered provider names a behavior tag; the handler registered
    for that tag decides how the response body maps to an address.
    """

    @property
    @abstractmethod
    def kind(self) -> str:
        """Returns the behavior tag this handler serves."""
        pass

    @abstractmethod
    def extract_address(self, body: str) -> IPAddress:
        """Extracts the caller's address from a decoded response body.

        Args:
            body: The full response body as text.

        Returns:
            The parsed address.

        Raises:
            AddressParseError: If the body holds no valid address.
        """
        pass

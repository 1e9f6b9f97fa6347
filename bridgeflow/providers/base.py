from abc import ABC, abstractmethod
from typing import Any, Dict


class Provider(ABC):
    """Base class for upstream HTTP services (Garden, relay)"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """True when the provider is configured (app id / URL present)"""

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Status dict with at least a ``status`` key: healthy, unavailable or disabled"""

    async def aclose(self) -> None:
        """Release pooled connections; a no-op for per-request clients"""

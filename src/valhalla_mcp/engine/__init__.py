from .base import RoutingEngine
from .client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS, ValhallaClient

__all__ = ["RoutingEngine", "ValhallaClient", "DEFAULT_BASE_URL", "DEFAULT_TIMEOUT_SECONDS"]

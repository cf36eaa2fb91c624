from __future__ import annotations

import typing as t
from abc import ABC, abstractmethod

JSON = t.Dict[str, t.Any]


class RoutingEngine(ABC):
    """Narrow contract the orchestrator needs from a remote routing engine.

    Implementations raise transport exceptions (or a classified
    `StandardError`) on failure; they never retry.
    """

    @abstractmethod
    async def route(self, request: JSON) -> JSON:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def isochrone(self, request: JSON) -> JSON:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def health(self) -> JSON:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def tile(self, z: int, x: int, y: int) -> bytes:  # pragma: no cover - interface
        raise NotImplementedError

    async def aclose(self) -> None:
        return None

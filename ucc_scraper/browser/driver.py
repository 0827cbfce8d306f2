"""Session Driver capability interface.

The engine only talks to a browser through these two protocols, so tests
can substitute a fake and the automation backend stays swappable.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Session(Protocol):
    """One browser page owned by a single search attempt."""

    async def navigate(self, url: str, *, wait_until: str, timeout_ms: int) -> None: ...
    async def wait_for_any(self, selectors: tuple[str, ...], timeout_ms: int) -> str | None: ...
    async def evaluate(self, script: str) -> Any: ...
    async def close(self) -> None: ...


@runtime_checkable
class SessionDriver(Protocol):
    """Factory for sessions. Owns the long-lived browser resource."""

    async def open(self) -> Session: ...
    async def close(self) -> None: ...

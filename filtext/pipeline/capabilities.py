"""
Capability registry for adapters with an unknown method surface.

Different ledger adapter versions name the same operation differently.
Instead of reflecting over an adapter, each known variant is registered as
a capability: a name plus a resolver that returns a ready-to-call function
when the adapter supports it, or None when it does not. Capabilities are
tried in registration order.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


async def maybe_await(value: T | Awaitable[T]) -> T:
    """Await `value` if the adapter returned a coroutine or future."""
    if inspect.isawaitable(value):
        return await value
    return value


def method(adapter: Any, name: str) -> Optional[Callable[..., Any]]:
    """Return the adapter's callable attribute `name`, if it has one."""
    candidate = getattr(adapter, name, None)
    return candidate if callable(candidate) else None


@dataclass(frozen=True)
class Capability:
    """One way of performing an operation on an adapter."""

    name: str
    resolve: Callable[[Any], Optional[Callable[[], Any]]]

    def bind(self, adapter: Any) -> Optional[Callable[[], Any]]:
        return self.resolve(adapter)


class CapabilityRegistry:
    """Ordered list of capabilities for a single operation."""

    def __init__(self, operation: str, capabilities: Optional[list[Capability]] = None):
        self.operation = operation
        self._capabilities: list[Capability] = list(capabilities or [])

    def register(self, capability: Capability) -> None:
        self._capabilities.append(capability)
        logger.debug(
            "Registered capability",
            operation=self.operation,
            capability=capability.name,
        )

    @property
    def names(self) -> list[str]:
        return [c.name for c in self._capabilities]

    def available(self, adapter: Any) -> list[tuple[str, Callable[[], Any]]]:
        """Capabilities the adapter supports, in order, bound and ready to call."""
        bound = []
        for capability in self._capabilities:
            call = capability.bind(adapter)
            if call is not None:
                bound.append((capability.name, call))
        return bound

    def first(self, adapter: Any) -> Optional[tuple[str, Callable[[], Any]]]:
        available = self.available(adapter)
        return available[0] if available else None

"""Tracks which parameter is currently being injected.

A value provider resolving a dependency may itself need to construct
something whose constructor asks for an :class:`~autowire.domain.InjectionPoint`,
for instance a logger named after the class it is injected into. The
resolver pushes the injection point before asking the provider for a value
and restores the previous one afterwards, so nested resolutions observe the
innermost point.

The state lives in a :class:`contextvars.ContextVar` owned by each
:class:`InjectionPointContext`, which makes it confined to the current thread
or task and independent between resolver instances.
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator, Optional

from autowire.domain import InjectionPoint
from autowire.errors import IllegalStateError

__all__ = ["InjectionPointContext"]


class InjectionPointContext:
    """Scoped, reentrant holder for the current injection point."""

    def __init__(self, name: str = "current_injection_point"):
        self._current: ContextVar[Optional[InjectionPoint]] = ContextVar(name, default=None)

    def push(self, point: Optional[InjectionPoint]) -> Token:
        """Make ``point`` current, returning a token that restores the previous one."""
        return self._current.set(point)

    def restore(self, previous: Token) -> None:
        self._current.reset(previous)

    def current(self) -> Optional[InjectionPoint]:
        return self._current.get()

    def require(self, requested_for: object = None) -> InjectionPoint:
        """The current injection point.

        Raises:
            IllegalStateError: If no injection point has been pushed.
        """
        point = self._current.get()
        if point is None:
            suffix = f" for {requested_for}" if requested_for is not None else ""
            raise IllegalStateError(f"No current InjectionPoint available{suffix}")
        return point

    @contextmanager
    def injecting(self, point: InjectionPoint) -> Iterator[InjectionPoint]:
        token = self.push(point)
        try:
            yield point
        finally:
            self.restore(token)

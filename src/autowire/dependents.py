"""Records which targets depend on which values."""

import threading
from collections import defaultdict

__all__ = ["DependentsRegistry"]


class DependentsRegistry:
    """Thread-safe record of "dependent uses value" edges.

    Example:
        >>> registry = DependentsRegistry()
        >>> registry.register_dependency("db", "repository")
        >>> registry.dependents_of("db")
        frozenset({'repository'})
    """

    def __init__(self):
        self._dependents: dict[str, set[str]] = defaultdict(set)
        self._dependencies: dict[str, set[str]] = defaultdict(set)
        self._lock = threading.Lock()

    def register_dependency(self, used_name: str, dependent_name: str) -> None:
        with self._lock:
            self._dependents[used_name].add(dependent_name)
            self._dependencies[dependent_name].add(used_name)

    def dependents_of(self, name: str) -> frozenset[str]:
        """Names of the targets that were given ``name``."""
        with self._lock:
            return frozenset(self._dependents.get(name, ()))

    def dependencies_of(self, name: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._dependencies.get(name, ()))

"""Invoking the chosen executable."""

from typing import Any

from autowire.domain import CONSTRUCTOR, Executable
from autowire.errors import InstantiationFailure
from autowire.interfaces import InstantiationStrategy

__all__ = ["SimpleInstantiationStrategy", "Instantiator"]


class SimpleInstantiationStrategy:
    """Calls the executable directly."""

    def instantiate(
        self,
        target_name: str,
        executable: Executable,
        args: list[Any],
        factory_instance: Any = None,
    ) -> Any:
        return executable.invoke(list(args), factory_instance)


class Instantiator:
    """Runs an :class:`~autowire.interfaces.InstantiationStrategy`, wrapping its failures."""

    def __init__(self, strategy: InstantiationStrategy = None):
        self._strategy = strategy or SimpleInstantiationStrategy()

    def instantiate(
        self,
        target_name: str,
        executable: Executable,
        args: list[Any],
        factory_instance: Any = None,
    ) -> Any:
        """Produce the instance.

        Raises:
            InstantiationFailure: If the strategy or the invoked code raises.
        """
        try:
            return self._strategy.instantiate(target_name, executable, args, factory_instance)
        except Exception as ex:
            via = "constructor" if executable.kind == CONSTRUCTOR else "factory method"
            raise InstantiationFailure(
                target_name, f"Instantiation via {via} {executable} failed", ex
            ) from ex

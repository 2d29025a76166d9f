"""Contracts of the collaborators the engine consumes.

The engine only talks to these protocols; :mod:`autowire.value_pool`,
:mod:`autowire.dependents`, :mod:`autowire.conversion` and
:mod:`autowire.declared` hold simple implementations of them.
"""

from typing import Any, Optional, Protocol

from autowire.domain import DependencyDescriptor, Executable, Parameter

__all__ = [
    "TypeConverter",
    "InjectableProvider",
    "DependencyRegistrar",
    "InstantiationStrategy",
    "DeclaredValueResolver",
    "TypeDescriptor",
]


class TypeConverter(Protocol):
    def convert(self, value: Any, target_type: Any, parameter: Optional[Parameter] = None) -> Any:
        """Coerce ``value`` to ``target_type``.

        Raises:
            ConversionFailure: If the value cannot be converted.
        """
        ...


class InjectableProvider(Protocol):
    def resolve(
        self,
        descriptor: DependencyDescriptor,
        requesting_name: str,
        autowired_names: Optional[set[str]] = None,
    ) -> Any:
        """Supply a value for the described parameter.

        Names of the values used are added to ``autowired_names``.

        Raises:
            NotFoundError: If nothing can satisfy the parameter.
            MultipleCandidatesError: If several values satisfy it equally.
        """
        ...

    def lookup(self, name: str) -> Any:
        """Return the value registered under ``name``.

        Raises:
            NotFoundError: If no such value exists.
        """
        ...


class DependencyRegistrar(Protocol):
    def register_dependency(self, used_name: str, dependent_name: str) -> None:
        ...


class InstantiationStrategy(Protocol):
    def instantiate(
        self,
        target_name: str,
        executable: Executable,
        args: list[Any],
        factory_instance: Any = None,
    ) -> Any:
        ...


class DeclaredValueResolver(Protocol):
    def resolve_value(self, value: Any) -> Any:
        """Resolve references and expressions embedded in a declared value."""
        ...

    def evaluate_string(self, value: str) -> Any:
        ...


class TypeDescriptor(Protocol):
    def list_constructible_forms(self, allow_non_public: bool) -> list[Executable]:
        ...

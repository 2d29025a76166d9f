"""High level entry points for resolving and building targets."""

from typing import Any, Mapping, Optional

from autowire.cache import ResolutionCache
from autowire.conversion import SimpleTypeConverter
from autowire.declared import SimpleValueResolver
from autowire.dependents import DependentsRegistry
from autowire.domain import TargetDefinition
from autowire.injection_point import InjectionPointContext
from autowire.interfaces import (
    DependencyRegistrar,
    InjectableProvider,
    InstantiationStrategy,
    TypeConverter,
)
from autowire.resolver import ConstructorResolver
from autowire.value_pool import ValuePool

__all__ = ["make_resolver", "make_instance"]


def make_resolver(
    provider: Optional[InjectableProvider] = None,
    properties: Optional[Mapping[str, Any]] = None,
    registrar: Optional[DependencyRegistrar] = None,
    converter: Optional[TypeConverter] = None,
    strategy: Optional[InstantiationStrategy] = None,
    cache: Optional[ResolutionCache] = None,
    injection_points: Optional[InjectionPointContext] = None,
) -> ConstructorResolver:
    """Create a :class:`ConstructorResolver` wired with the simple collaborators.

    Args:
        provider: Supplies injected values and factory objects. Defaults to an
            empty :class:`~autowire.value_pool.ValuePool`.
        properties: Values substituted for ``${key}`` placeholders in declared
            argument values.
        registrar: Receives dependency edges. Defaults to a fresh
            :class:`~autowire.dependents.DependentsRegistry`.
        converter: Converts declared values. Defaults to
            :class:`~autowire.conversion.SimpleTypeConverter`.
        strategy: Invokes the chosen executable.
        cache: Resolution cache to share with other resolvers.
        injection_points: Injection point context to share with other resolvers.

    Returns:
        The configured resolver.

    Example:
        >>> resolver = make_resolver(ValuePool({"db": db}), {"pool.size": 4})
        >>> service = resolver.instantiate(TargetDefinition("service", Service, autowire=True))
    """
    provider = provider if provider is not None else ValuePool()
    return ConstructorResolver(
        provider,
        converter or SimpleTypeConverter(),
        registrar if registrar is not None else DependentsRegistry(),
        SimpleValueResolver(provider, properties),
        strategy,
        cache,
        injection_points,
    )


def make_instance(
    definition: TargetDefinition,
    provider: Optional[InjectableProvider] = None,
    explicit_args: Optional[list[Any]] = None,
    properties: Optional[Mapping[str, Any]] = None,
) -> Any:
    """Build a single target with a throwaway resolver.

    Raises:
        DependencyError: If the target cannot be resolved or instantiated.
    """
    resolver = make_resolver(provider, properties)
    return resolver.instantiate(resolver.prepare_factory_method(definition), explicit_args)

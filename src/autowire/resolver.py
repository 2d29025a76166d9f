"""Resolving a target definition to a live instance.

:class:`ConstructorResolver` ties the pieces together: it enumerates a
target's candidates, resolves the target's declared argument values, lets the
selector match and score every candidate, caches the winning resolution and
finally invokes it. Targets are built either through one of their
constructors (:meth:`ConstructorResolver.autowire_constructor`) or through a
factory method (:meth:`ConstructorResolver.instantiate_using_factory_method`).

Example:
    >>> pool = ValuePool({"greeting": "hello"})
    >>> resolver = ConstructorResolver(pool)
    >>> definition = TargetDefinition("greeter", Greeter, autowire=True)
    >>> greeter = resolver.instantiate(definition)
"""

from dataclasses import replace
from functools import partial
from typing import Any, Iterable, Optional

from loguru import logger

from autowire.cache import ResolutionCache
from autowire.conversion import SimpleTypeConverter
from autowire.declared import DeclaredArguments, SimpleValueResolver, ValueReference
from autowire.domain import Executable, InjectionPoint, TargetDefinition
from autowire.errors import ConversionFailure, DefinitionError, UnsatisfiedError
from autowire.injection_point import InjectionPointContext
from autowire.instantiation import Instantiator
from autowire.interfaces import (
    DeclaredValueResolver,
    DependencyRegistrar,
    InjectableProvider,
    InstantiationStrategy,
    TypeConverter,
)
from autowire.introspection import (
    enumerate_constructors,
    enumerate_factory_methods,
    resolve_factory_method_if_possible,
)
from autowire.matcher import AUTOWIRED_ARGUMENT, ArgumentMatcher
from autowire.selector import CandidateSelector

__all__ = ["ConstructorResolver"]

_NONE_TYPE = type(None)


class ConstructorResolver:
    """Selects, caches and invokes the executable that builds a target.

    Args:
        provider: Supplies injectable values, and factory objects by name.
        converter: Converts declared values; defaults to
            :class:`~autowire.conversion.SimpleTypeConverter`.
        registrar: Receives dependency edges for injected values and factory
            objects; optional.
        value_resolver: Resolves references and placeholders in declared
            values; defaults to a :class:`~autowire.declared.SimpleValueResolver`
            over ``provider``.
        strategy: Invokes the chosen executable; defaults to a direct call.
        cache: Resolution cache, shareable between resolvers.
        injection_points: Injection point context, shareable between resolvers
            that call into each other.
    """

    def __init__(
        self,
        provider: InjectableProvider,
        converter: Optional[TypeConverter] = None,
        registrar: Optional[DependencyRegistrar] = None,
        value_resolver: Optional[DeclaredValueResolver] = None,
        strategy: Optional[InstantiationStrategy] = None,
        cache: Optional[ResolutionCache] = None,
        injection_points: Optional[InjectionPointContext] = None,
    ):
        self._provider = provider
        self._converter = converter or SimpleTypeConverter()
        self._registrar = registrar
        self._value_resolver = value_resolver or SimpleValueResolver(provider)
        self._instantiator = Instantiator(strategy)
        self._selector = CandidateSelector()
        self.cache = cache if cache is not None else ResolutionCache()
        self.injection_points = injection_points or InjectionPointContext()
        self._matcher = ArgumentMatcher(
            provider, self._converter, registrar, self.injection_points
        )

    def instantiate(self, definition: TargetDefinition, explicit_args: Optional[list[Any]] = None) -> Any:
        """Build ``definition`` through its factory method if it has one, else a constructor."""
        if definition.factory_method_name is not None:
            return self.instantiate_using_factory_method(definition, explicit_args)
        return self.autowire_constructor(definition, explicit_args=explicit_args)

    def autowire_constructor(
        self,
        definition: TargetDefinition,
        chosen_constructors: Optional[Iterable[Executable]] = None,
        explicit_args: Optional[list[Any]] = None,
    ) -> Any:
        """Build ``definition`` through the best matching constructor.

        Args:
            definition: The target to build.
            chosen_constructors: Candidates to consider instead of every
                constructor of the target type; supplying them turns on
                autowiring.
            explicit_args: Arguments passed by the caller. They bypass the
                cache, are used verbatim and are never cached.

        Raises:
            NoMatchError: If no constructor fits.
            AmbiguousError: If, in strict mode, several constructors fit equally.
            InstantiationFailure: If the chosen constructor fails.
        """
        name = definition.name
        executable, args = None, None
        if explicit_args is not None:
            args = list(explicit_args)
        else:
            executable, args = self._load_cached(definition)

        if executable is None or args is None:
            if chosen_constructors is not None:
                candidates = list(chosen_constructors)
            else:
                if definition.target_type is None:
                    raise DefinitionError(f"'{name}' declares no target type")
                candidates = enumerate_constructors(definition.target_type, definition.allow_non_public)

            if len(candidates) == 1 and explicit_args is None and not definition.has_declared_arguments:
                unique = candidates[0]
                if unique.parameter_count == 0:
                    self.cache.store_resolved(name, unique)
                    return self._instantiator.instantiate(name, unique, [])

            autowiring = chosen_constructors is not None or definition.autowire
            declared = None
            if explicit_args is not None:
                min_arg_count = len(explicit_args)
            else:
                declared, min_arg_count = self.resolve_declared_arguments(definition)
            fallback = len(candidates) == 1

            selection = self._selector.select(
                name,
                candidates,
                partial(
                    self._matcher.match,
                    name,
                    declared=declared,
                    autowiring=autowiring,
                    fallback=fallback,
                ),
                definition.lenient,
                min_arg_count,
                explicit_args,
            )
            executable = selection.executable
            args = selection.slots.converted
            if explicit_args is None:
                self.cache.store(name, executable, selection.slots, fallback)

        return self._instantiator.instantiate(name, executable, args)

    def instantiate_using_factory_method(
        self, definition: TargetDefinition, explicit_args: Optional[list[Any]] = None
    ) -> Any:
        """Build ``definition`` through a named factory method.

        Without a ``factory_name`` the method is a class or static method of
        ``target_type``; otherwise it is invoked on the factory object looked
        up under that name.

        Raises:
            DefinitionError: If the definition is inconsistent, or the chosen
                method is declared to return ``None``.
            NoMatchError: If no factory method fits.
            AmbiguousError: If, in strict mode, several factory methods fit equally.
            InstantiationFailure: If the chosen method fails.
        """
        name = definition.name
        if definition.factory_method_name is None:
            raise DefinitionError(f"'{name}' declares no factory method")

        if definition.factory_name is not None:
            if definition.factory_name == name:
                raise DefinitionError(
                    f"Factory reference of '{name}' points back to the same definition"
                )
            factory_instance = self._provider.lookup(definition.factory_name)
            if self._registrar is not None:
                self._registrar.register_dependency(definition.factory_name, name)
            factory_type = type(factory_instance)
            is_static = False
        else:
            if definition.target_type is None:
                raise DefinitionError(
                    f"'{name}' declares neither a target type nor a factory reference"
                )
            factory_instance = None
            factory_type = definition.target_type
            is_static = True

        executable, args = None, None
        if explicit_args is not None:
            args = list(explicit_args)
        else:
            executable, args = self._load_cached(definition)

        if executable is None or args is None:
            if definition.unique_factory_method is not None:
                candidates = [definition.unique_factory_method]
            else:
                candidates = enumerate_factory_methods(
                    factory_type,
                    definition.factory_method_name,
                    is_static,
                    definition.allow_non_public,
                )

            if len(candidates) == 1 and explicit_args is None and not definition.has_declared_arguments:
                unique = candidates[0]
                if unique.parameter_count == 0:
                    self.cache.store_resolved(name, unique)
                    return self._instantiator.instantiate(name, unique, [], factory_instance)

            declared = None
            if explicit_args is not None:
                min_arg_count = len(explicit_args)
            elif definition.has_declared_arguments:
                declared, min_arg_count = self.resolve_declared_arguments(definition)
            else:
                min_arg_count = 0
            fallback = len(candidates) == 1

            selection = self._selector.select(
                name,
                candidates,
                partial(
                    self._matcher.match,
                    name,
                    declared=declared,
                    autowiring=definition.autowire,
                    fallback=fallback,
                ),
                definition.lenient,
                min_arg_count,
                explicit_args,
                greedy=False,
                no_match_message=_no_factory_method_message(
                    definition, factory_type, is_static, explicit_args, min_arg_count
                ),
            )
            executable = selection.executable
            if executable.return_type is _NONE_TYPE:
                raise DefinitionError(
                    f"Invalid factory method '{definition.factory_method_name}' on class "
                    f"[{factory_type.__name__}]: needs to have a non-None return type"
                )
            args = selection.slots.converted
            if explicit_args is None:
                self.cache.store(name, executable, selection.slots, fallback)

        return self._instantiator.instantiate(name, executable, args, factory_instance)

    def prepare_factory_method(self, definition: TargetDefinition) -> TargetDefinition:
        """Pin the definition to its factory method when the choice cannot vary.

        If every method answering to the factory method name has the same
        parameter signature, a copy of the definition carrying that method as
        its ``unique_factory_method`` is returned, and enumeration is skipped
        from then on. Otherwise the definition is returned unchanged.
        """
        if definition.factory_method_name is None or definition.unique_factory_method is not None:
            return definition
        if definition.factory_name is not None:
            factory_type = type(self._provider.lookup(definition.factory_name))
        elif definition.target_type is not None:
            factory_type = definition.target_type
        else:
            return definition

        unique = resolve_factory_method_if_possible(definition, factory_type)
        if unique is None:
            return definition
        return replace(definition, unique_factory_method=unique)

    def resolve_declared_arguments(self, definition: TargetDefinition) -> tuple[DeclaredArguments, int]:
        """Resolve references and placeholders in the declared values.

        Returns:
            The resolved values, each remembering the declaration it came
            from, and the minimum number of arguments a candidate must take.

        Raises:
            DefinitionError: If a declared index is negative.
        """
        declared = definition.declared_arguments
        resolved = DeclaredArguments()
        min_arg_count = declared.argument_count

        for index, holder in declared.indexed.items():
            if index < 0:
                raise DefinitionError(
                    f"Invalid declared argument index {index} for '{definition.name}'"
                )
            min_arg_count = max(min_arg_count, index + 1)
            if not holder.is_converted:
                holder = holder.resolved_to(self._value_resolver.resolve_value(holder.value))
            resolved.add_indexed(index, holder)

        for holder in declared.generic:
            if not holder.is_converted:
                holder = holder.resolved_to(self._value_resolver.resolve_value(holder.value))
            resolved.add_generic(holder)

        return resolved, min_arg_count

    def resolve_prepared_arguments(
        self,
        definition: TargetDefinition,
        executable: Executable,
        prepared: Iterable[Any],
        fallback: bool = False,
    ) -> list[Any]:
        """Materialise a cached recipe into fresh arguments.

        Autowired entries are injected again, with the same empty-collection
        ``fallback`` the recipe was matched with. References and strings are
        resolved again, and every value is converted to its parameter type.

        Raises:
            UnsatisfiedError: If a value cannot be converted.
        """
        args = []
        for index, value in enumerate(prepared):
            point = InjectionPoint(executable, index)
            parameter = point.parameter
            if value is AUTOWIRED_ARGUMENT:
                value = self._matcher.resolve_autowired_argument(point, definition.name, None, fallback)
            elif isinstance(value, (ValueReference, list, tuple, dict)):
                value = self._value_resolver.resolve_value(value)
            elif isinstance(value, str):
                value = self._value_resolver.evaluate_string(value)
            try:
                args.append(self._converter.convert(value, parameter.declared_type, parameter))
            except ConversionFailure as ex:
                raise UnsatisfiedError(
                    definition.name,
                    point,
                    f"Could not convert argument value of type [{type(value).__name__}] "
                    f"to required type [{parameter.declared_type}]: {ex}",
                ) from ex
        return args

    def _load_cached(self, definition: TargetDefinition) -> tuple[Optional[Executable], Optional[list[Any]]]:
        entry = self.cache.load(definition.name)
        if entry is None:
            return None, None
        logger.trace(f"Reusing cached resolution of '{definition.name}': {entry.executable}")
        if entry.resolved_arguments is not None:
            return entry.executable, list(entry.resolved_arguments)
        return entry.executable, self.resolve_prepared_arguments(
            definition, entry.executable, entry.prepared_arguments, entry.fallback
        )


def _no_factory_method_message(
    definition: TargetDefinition,
    factory_type: type,
    is_static: bool,
    explicit_args: Optional[list[Any]],
    min_arg_count: int,
) -> str:
    if explicit_args is not None:
        arg_types = [type(arg).__name__ if arg is not None else "None" for arg in explicit_args]
    else:
        declared = definition.declared_arguments
        arg_types = [
            _declared_type_name(holder)
            for holder in list(declared.indexed.values()) + declared.generic
        ]
    factory = f"factory object '{definition.factory_name}'; " if definition.factory_name else ""
    return (
        f"No matching factory method found on class [{factory_type.__name__}]: {factory}"
        f"factory method '{definition.factory_method_name}({', '.join(arg_types)})'. "
        f"Check that a method with the specified name {'and arguments ' if min_arg_count > 0 else ''}"
        f"exists and that it is {'static' if is_static else 'non-static'}."
    )


def _declared_type_name(holder) -> str:
    if holder.type_hint is not None:
        return holder.type_hint if isinstance(holder.type_hint, str) else holder.type_hint.__name__
    return type(holder.value).__name__ if holder.value is not None else "None"

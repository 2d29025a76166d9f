"""Discovery of the constructors and factory methods a target can be built with.

Python has a single ``__init__`` per class, so a type's alternative
constructors are class or static methods marked with :func:`constructor`.
Factory methods are looked up by attribute name, or by any alias given to
:func:`factory_method`, which allows several overloads to share one name.

Members whose name starts with an underscore are non-public and are only
candidates when the target allows non-public access.
"""

import inspect
from typing import Any, Callable, Optional, get_type_hints

from autowire.domain import (
    CONSTRUCTOR,
    FACTORY_METHOD,
    Executable,
    Parameter,
    TargetDefinition,
)
from autowire.errors import ReflectionFailure
from autowire.type_matching import unwrap_annotated

__all__ = [
    "constructor",
    "factory_method",
    "parameter_names",
    "enumerate_constructors",
    "enumerate_factory_methods",
    "sort_executables",
    "resolve_factory_method_if_possible",
    "ReflectiveTypeDescriptor",
]

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def set_marker(target: Any, **kwargs) -> Any:
    """Attach marker attributes to a function, unwrapping class/static methods."""
    func = target.__func__ if isinstance(target, (classmethod, staticmethod)) else target
    for key, value in kwargs.items():
        setattr(func, key, value)
    return target


def constructor(target: Any) -> Any:
    """Mark a class or static method as an alternative constructor.

    Example:
        >>> class Point:
        ...     def __init__(self, x: int, y: int): ...
        ...
        ...     @constructor
        ...     @classmethod
        ...     def origin(cls) -> "Point":
        ...         return cls(0, 0)
    """
    return set_marker(target, __autowire_constructor__=True)


def factory_method(*names: str) -> Callable:
    """Make a method answer to additional factory method names."""

    def decorator(target: Any) -> Any:
        func = target.__func__ if isinstance(target, (classmethod, staticmethod)) else target
        existing = getattr(func, "__factory_method_names__", ())
        return set_marker(target, __factory_method_names__=tuple(existing) + names)

    return decorator


def parameter_names(*names: str) -> Callable:
    """Declare the names a callable's parameters should be matched by.

    Applied to a class, the names describe its regular constructor.
    """

    def decorator(target: Any) -> Any:
        if inspect.isclass(target):
            target.__parameter_names__ = names
            return target
        return set_marker(target, __parameter_names__=names)

    return decorator


def enumerate_constructors(target_type: type, allow_non_public: bool = True) -> list[Executable]:
    """The regular constructor of ``target_type`` followed by its marked alternatives.

    Raises:
        ReflectionFailure: If ``target_type`` is not a class or cannot be introspected.
    """
    if not inspect.isclass(target_type):
        raise ReflectionFailure(target_type, "not a class")

    candidates = [_regular_constructor(target_type)]
    for name, raw, declaring_type in _visible_members(target_type, shadowed=False):
        if not getattr(_unwrap(raw), "__autowire_constructor__", False):
            continue
        if not (allow_non_public or _is_public(name)):
            continue
        if not isinstance(raw, (classmethod, staticmethod)):
            raise ReflectionFailure(
                target_type, f"@constructor member '{name}' must be a classmethod or staticmethod"
            )
        candidates.append(
            _make_executable(
                raw.__get__(None, target_type),
                name,
                declaring_type,
                CONSTRUCTOR,
                is_static=True,
                owner=target_type,
            )
        )
    return candidates


def enumerate_factory_methods(
    factory_type: type,
    method_name: str,
    is_static: bool,
    allow_non_public: bool = True,
) -> list[Executable]:
    """Methods of ``factory_type`` answering to ``method_name``.

    Static factories are class or static methods; instance factories are
    plain methods invoked on a factory object. With non-public access every
    class in the MRO is searched, so overridden declarations are returned
    alongside their overrides.

    Raises:
        ReflectionFailure: If ``factory_type`` is not a class or a matching
            method cannot be introspected.
    """
    if not inspect.isclass(factory_type):
        raise ReflectionFailure(factory_type, "not a class")

    candidates = []
    for name, raw, declaring_type in _visible_members(factory_type, shadowed=allow_non_public):
        if not (allow_non_public or _is_public(name)):
            continue
        static_member = isinstance(raw, (classmethod, staticmethod))
        if not (static_member or inspect.isfunction(raw)) or static_member != is_static:
            continue
        aliases = getattr(_unwrap(raw), "__factory_method_names__", ())
        if name != method_name and method_name not in aliases:
            continue
        func = raw.__get__(None, factory_type) if static_member else raw
        candidates.append(
            _make_executable(
                func,
                name,
                declaring_type,
                FACTORY_METHOD,
                is_static=is_static,
                owner=factory_type,
                skip_first=not static_member,
            )
        )
    return candidates


def sort_executables(candidates: list[Executable]) -> list[Executable]:
    """Public executables first, then those with more parameters first."""
    return sorted(candidates, key=lambda e: (not e.is_public, -e.parameter_count))


def resolve_factory_method_if_possible(
    definition: TargetDefinition, factory_type: type
) -> Optional[Executable]:
    """The definition's factory method, if every matching method shares one signature."""
    candidates = enumerate_factory_methods(
        factory_type,
        definition.factory_method_name,
        definition.factory_name is None,
        definition.allow_non_public,
    )
    unique = None
    for candidate in candidates:
        if unique is None:
            unique = candidate
        elif _is_param_mismatch(unique, candidate):
            return None
    return unique


class ReflectiveTypeDescriptor:
    """Lists a type's constructible forms by introspecting it."""

    def __init__(self, target_type: type):
        self.target_type = target_type

    def list_constructible_forms(self, allow_non_public: bool) -> list[Executable]:
        return enumerate_constructors(self.target_type, allow_non_public)


def _regular_constructor(target_type: type) -> Executable:
    try:
        signature = inspect.signature(target_type)
    except (ValueError, TypeError) as ex:
        raise ReflectionFailure(target_type, f"no constructor signature: {ex}") from ex

    hints = _resolved_hints(_constructor_function(target_type), target_type)
    declared_names = _class_parameter_names(target_type) or getattr(
        target_type.__init__, "__parameter_names__", None
    )
    return _build_executable(
        target_type,
        "__init__",
        target_type,
        CONSTRUCTOR,
        True,
        signature.parameters.values(),
        hints,
        declared_names,
        target_type,
        target_type,
    )


def _make_executable(
    func: Callable,
    name: str,
    declaring_type: type,
    kind: str,
    is_static: bool,
    owner: type,
    skip_first: bool = False,
) -> Executable:
    try:
        signature = inspect.signature(func)
    except (ValueError, TypeError) as ex:
        raise ReflectionFailure(owner, f"no signature for '{name}': {ex}") from ex

    parameters = list(signature.parameters.values())
    if skip_first:
        parameters = parameters[1:]
    hints = _resolved_hints(func, owner)
    return _build_executable(
        func,
        name,
        declaring_type,
        kind,
        is_static,
        parameters,
        hints,
        getattr(func, "__parameter_names__", None),
        hints.get("return"),
        owner,
    )


def _build_executable(
    func, name, declaring_type, kind, is_static, parameters, hints, declared_names, return_type, owner
) -> Executable:
    formal = tuple(
        _make_parameter(parameter, hints.get(parameter.name))
        for parameter in parameters
        if parameter.kind not in _VARIADIC
    )
    if declared_names is not None and len(declared_names) != len(formal):
        raise ReflectionFailure(
            owner,
            f"'{name}' declares parameter names {tuple(declared_names)} but has "
            f"{len(formal)} parameters",
        )
    return Executable(
        func,
        name,
        formal,
        declaring_type,
        is_public=_is_public(name),
        is_static=is_static,
        kind=kind,
        return_type=return_type,
        declared_parameter_names=tuple(declared_names) if declared_names is not None else None,
    )


def _make_parameter(parameter: inspect.Parameter, annotation: Any) -> Parameter:
    if annotation is None and parameter.annotation is not inspect.Parameter.empty:
        if not isinstance(parameter.annotation, str):
            annotation = parameter.annotation

    base_type, metadata = unwrap_annotated(annotation)
    qualifier = next((m for m in metadata if isinstance(m, str)), None)
    return Parameter(parameter.name, base_type, qualifier, parameter.kind, parameter.default)


def _visible_members(target_type: type, shadowed: bool):
    """Yield ``(name, raw attribute, declaring class)`` in MRO order.

    Unless ``shadowed`` is set, only the most derived declaration of each
    name is yielded.
    """
    seen = set()
    for klass in target_type.__mro__:
        if klass is object:
            continue
        for name, raw in klass.__dict__.items():
            if not shadowed and name in seen:
                continue
            seen.add(name)
            yield name, raw, klass


def _class_parameter_names(target_type: type) -> Optional[tuple[str, ...]]:
    # Names set on a class describe the __init__ it declares, so stop there.
    for klass in target_type.__mro__:
        names = klass.__dict__.get("__parameter_names__")
        if names is not None:
            return names
        if "__init__" in klass.__dict__:
            return None
    return None


def _constructor_function(target_type: type) -> Optional[Callable]:
    if target_type.__init__ is not object.__init__:
        return target_type.__init__
    if target_type.__new__ is not object.__new__:
        return target_type.__new__
    return None


def _resolved_hints(func: Optional[Callable], owner: Any) -> dict[str, Any]:
    if func is None:
        return {}
    func = inspect.unwrap(getattr(func, "__func__", func))
    try:
        return get_type_hints(func, include_extras=True)
    except (NameError, TypeError, AttributeError) as ex:
        raise ReflectionFailure(owner, f"cannot resolve annotations: {ex}") from ex


def _unwrap(raw: Any) -> Any:
    return raw.__func__ if isinstance(raw, (classmethod, staticmethod)) else raw


def _is_public(name: str) -> bool:
    return name == "__init__" or not name.startswith("_")


def _is_param_mismatch(unique: Executable, candidate: Executable) -> bool:
    return (
        unique.parameter_count != candidate.parameter_count
        or unique.parameter_types != candidate.parameter_types
    )

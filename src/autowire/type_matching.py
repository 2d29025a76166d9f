"""Runtime checks of values against type annotations.

Annotations are compared the way the engine needs them for scoring: a value
either fits a parameter's declared type or it does not, and when it fits, the
distance between the value's class and the declared type is measured by
walking the value's MRO.
"""

import abc
import collections.abc
import inspect
import sys
import types
from typing import Annotated, Any, Literal, Optional, TypeVar, Union, get_args, get_origin

__all__ = [
    "IMPOSSIBLE_WEIGHT",
    "unwrap_annotated",
    "unwrap_optional",
    "runtime_class",
    "is_assignable_value",
    "type_difference_weight",
    "matches_type_name",
    "empty_collection_for",
]

IMPOSSIBLE_WEIGHT = sys.maxsize

_UNION_TYPES = (Union, types.UnionType)
_NONE_TYPE = type(None)


def unwrap_annotated(declared_type: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split ``Annotated[T, ...]`` into ``T`` and its metadata."""
    if get_origin(declared_type) is Annotated:
        base_type, *metadata = get_args(declared_type)
        return base_type, tuple(metadata)
    return declared_type, ()


def unwrap_optional(declared_type: Any) -> Any:
    """Return ``T`` for ``Optional[T]``, otherwise the type unchanged."""
    if get_origin(declared_type) in _UNION_TYPES:
        members = [arg for arg in get_args(declared_type) if arg is not _NONE_TYPE]
        if len(members) == 1:
            return members[0]
    return declared_type


def runtime_class(declared_type: Any) -> Optional[type]:
    """The class ``isinstance`` checks should use for an annotation.

    Returns ``object`` for unannotated or ``Any`` parameters and ``None`` when
    the annotation has no single runtime class (unions, literals, type vars).
    """
    declared_type, _ = unwrap_annotated(declared_type)
    if _is_unconstrained(declared_type):
        return object
    origin = get_origin(declared_type)
    if origin in _UNION_TYPES:
        return None
    if origin is not None:
        return origin if isinstance(origin, type) else None
    if isinstance(declared_type, type):
        return declared_type
    return None


def is_assignable_value(declared_type: Any, value: Any) -> bool:
    """Check whether ``value`` may be passed to a parameter of ``declared_type``."""
    declared_type, _ = unwrap_annotated(declared_type)

    if _is_unconstrained(declared_type):
        return True
    if isinstance(declared_type, TypeVar):
        bound = declared_type.__bound__
        return bound is None or is_assignable_value(bound, value)

    origin = get_origin(declared_type)
    if origin in _UNION_TYPES:
        return any(is_assignable_value(member, value) for member in get_args(declared_type))
    if origin is Literal:
        return value in get_args(declared_type)
    if declared_type is _NONE_TYPE:
        return value is None
    if value is None:
        return False

    if origin is not None:
        if origin is collections.abc.Callable:
            return callable(value)
        if origin is type:
            args = get_args(declared_type)
            if not isinstance(value, type):
                return False
            return not args or _safe_issubclass(value, runtime_class(args[0]) or object)
        return _safe_isinstance(value, origin) if isinstance(origin, type) else True

    if isinstance(declared_type, type):
        if declared_type in (float, complex) and isinstance(value, int) and not isinstance(value, bool):
            return True
        return _safe_isinstance(value, declared_type)

    # Unresolved forward references and other annotations we cannot check.
    return True


def type_difference_weight(parameter_types: tuple[Any, ...], args: list[Any]) -> int:
    """Measure how far ``args`` are from ``parameter_types``; lower is closer.

    Each base class walked between an argument's class and the declared type
    adds 2, an abstract declared type adds 1 more, and any argument that is
    not assignable makes the whole match impossible.
    """
    result = 0
    for declared_type, arg in zip(parameter_types, args):
        if not is_assignable_value(declared_type, arg):
            return IMPOSSIBLE_WEIGHT
        if arg is None:
            continue
        target = runtime_class(declared_type)
        if target is None:
            continue
        for base in type(arg).__mro__[1:]:
            if base is target:
                result += 2
                break
            if _safe_issubclass(base, target):
                result += 2
            else:
                break
        if _is_abstract(target):
            result += 1
    return result


def matches_type_name(declared_type: Any, type_hint: Any) -> bool:
    """Check a declared value's type hint against a parameter's type.

    Hints may be a type or a name: either the short name, the qualified name
    or the module-qualified name of the parameter's type.
    """
    target = runtime_class(unwrap_optional(unwrap_annotated(declared_type)[0]))
    if isinstance(type_hint, str):
        if target is None:
            return type_hint == str(declared_type)
        return type_hint in (
            target.__name__,
            target.__qualname__,
            f"{target.__module__}.{target.__qualname__}",
        )
    hinted = runtime_class(type_hint)
    return target is not None and hinted is target


def empty_collection_for(declared_type: Any) -> Optional[Any]:
    """An empty instance of a collection-typed parameter, or None.

    Strings and bytes are not treated as collections.
    """
    base_type = unwrap_optional(unwrap_annotated(declared_type)[0])
    target = runtime_class(base_type)
    if target is None or target is object or issubclass(target, (str, bytes, bytearray)):
        return None

    if not inspect.isabstract(target) and issubclass(
        target, (list, tuple, set, frozenset, dict, collections.deque)
    ):
        return target()
    if not inspect.isabstract(target):
        return None
    if issubclass(target, collections.abc.Mapping):
        return {}
    if issubclass(target, collections.abc.Set):
        return set()
    if issubclass(target, collections.abc.Iterable):
        return []
    return None


def _is_unconstrained(declared_type: Any) -> bool:
    return (
        declared_type is None
        or declared_type is Any
        or declared_type is object
        or declared_type is inspect.Parameter.empty
    )


def _is_abstract(target: type) -> bool:
    return isinstance(target, abc.ABCMeta) or getattr(target, "_is_protocol", False)


def _safe_isinstance(value: Any, target: type) -> bool:
    try:
        return isinstance(value, target)
    except TypeError:
        # Protocols that are not runtime checkable
        return True


def _safe_issubclass(candidate: type, target: type) -> bool:
    try:
        return issubclass(candidate, target)
    except TypeError:
        return False

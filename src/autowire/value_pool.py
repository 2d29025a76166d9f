"""A simple injectable provider backed by named values.

Values are registered under a name and found either by that name or by type.
Pools can be layered: a child pool sees its parent's values but the parent
never sees the child's, so request-level values can depend on global ones
without leaking back into them.

Example:
    >>> pool = ValuePool({"db": database})
    >>> request_pool = ValuePool({"user": current_user}, pool)
    >>> request_pool.lookup("db")  # Found in parent
"""

import collections.abc
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, get_args, get_origin

from autowire.domain import DependencyDescriptor
from autowire.errors import MultipleCandidatesError, NotFoundError
from autowire.type_matching import (
    is_assignable_value,
    runtime_class,
    unwrap_annotated,
    unwrap_optional,
)

__all__ = ["ValuePool"]


@dataclass(frozen=True)
class _Entry:
    name: str
    value: Any = None
    supplier: Optional[Callable[[], Any]] = None
    declared_types: tuple[type, ...] = field(default=())

    def get(self) -> Any:
        if self.supplier is not None:
            return self.supplier()
        return self.value

    def matches(self, declared_type: Any) -> bool:
        if self.declared_types:
            target = runtime_class(unwrap_optional(unwrap_annotated(declared_type)[0]))
            if target is None:
                return False
            return any(_is_subclass(provided, target) for provided in self.declared_types)
        if self.supplier is not None:
            return False
        return is_assignable_value(declared_type, self.value) and _elements_fit(
            declared_type, self.value
        )


class ValuePool:
    """Named values with lookup by name or by type, and optional parent lookup.

    Args:
        values: Initial values keyed by name.
        parent: Pool consulted for anything not found locally.
    """

    def __init__(self, values: Optional[dict[str, Any]] = None, parent: Optional["ValuePool"] = None):
        self._entries: dict[str, _Entry] = {}
        self._parent = parent
        for name, value in (values or {}).items():
            self.register(name, value)

    def register(self, name: str, value: Any, declared_types: Optional[Iterable[type]] = None) -> None:
        """Add a value. Without ``declared_types`` it is matched by its own type."""
        self._entries[name] = _Entry(name, value, declared_types=tuple(declared_types or ()))

    def register_supplier(
        self, name: str, supplier: Callable[[], Any], provided_types: Iterable[type]
    ) -> None:
        """Add a supplier called afresh every time its value is injected or looked up."""
        provided_types = tuple(provided_types)
        if not provided_types:
            raise ValueError(f"Supplier '{name}' must declare the types it provides")
        self._entries[name] = _Entry(name, supplier=supplier, declared_types=provided_types)

    def lookup(self, name: str) -> Any:
        entry = self._entry(name)
        if entry is None:
            raise NotFoundError(name, f"No value named '{name}'")
        return entry.get()

    def resolve(
        self,
        descriptor: DependencyDescriptor,
        requesting_name: str,
        autowired_names: Optional[set[str]] = None,
    ) -> Any:
        """Find the value for an injected parameter.

        A qualified parameter is looked up by name. Otherwise the values whose
        type fits are considered; collection parameters first collect every
        value fitting their element type. When several values fit, the one
        named like the parameter wins.

        Raises:
            NotFoundError: If no value fits.
            MultipleCandidatesError: If several values fit and none is named
                like the parameter.
        """
        if descriptor.qualifier is not None:
            value = self.lookup(descriptor.qualifier)
            _record(autowired_names, descriptor.qualifier)
            return value

        declared_type = unwrap_optional(unwrap_annotated(descriptor.declared_type)[0])
        collected = self._collect(declared_type, requesting_name, autowired_names)
        if collected is not None:
            return collected

        candidates = [
            entry
            for entry in self._visible_entries()
            if entry.name != requesting_name and entry.matches(declared_type)
        ]
        if not candidates:
            raise NotFoundError(descriptor.declared_type)
        if len(candidates) > 1:
            by_name = [entry for entry in candidates if entry.name == descriptor.parameter_name]
            if len(by_name) != 1:
                raise MultipleCandidatesError(
                    descriptor.declared_type, [entry.name for entry in candidates]
                )
            candidates = by_name

        entry = candidates[0]
        _record(autowired_names, entry.name)
        return entry.get()

    def __contains__(self, name: str) -> bool:
        return self._entry(name) is not None

    def _entry(self, name: str) -> Optional[_Entry]:
        if name in self._entries:
            return self._entries[name]
        if self._parent is not None:
            return self._parent._entry(name)
        return None

    def _visible_entries(self) -> list[_Entry]:
        inherited = self._parent._visible_entries() if self._parent is not None else []
        return [entry for entry in inherited if entry.name not in self._entries] + list(
            self._entries.values()
        )

    def _collect(self, declared_type: Any, requesting_name: str, autowired_names) -> Optional[Any]:
        origin = get_origin(declared_type)
        args = get_args(declared_type)
        if not isinstance(origin, type) or not args:
            return None

        if issubclass(origin, collections.abc.Mapping):
            if len(args) != 2 or args[0] is not str:
                return None
            element_type = args[1]
        elif issubclass(origin, tuple):
            if len(args) != 2 or args[1] is not Ellipsis:
                return None
            element_type = args[0]
        elif issubclass(origin, collections.abc.Iterable) and not issubclass(origin, (str, bytes)):
            if len(args) != 1:
                return None
            element_type = args[0]
        else:
            return None

        entries = [
            entry
            for entry in self._visible_entries()
            if entry.name != requesting_name and entry.matches(element_type)
        ]
        if not entries:
            return None
        for entry in entries:
            _record(autowired_names, entry.name)

        if issubclass(origin, collections.abc.Mapping):
            return {entry.name: entry.get() for entry in entries}
        values = [entry.get() for entry in entries]
        if issubclass(origin, tuple):
            return tuple(values)
        if issubclass(origin, frozenset):
            return frozenset(values)
        if issubclass(origin, collections.abc.Set):
            return set(values)
        return values


def _record(autowired_names: Optional[set[str]], name: str) -> None:
    if autowired_names is not None:
        autowired_names.add(name)


def _is_subclass(candidate: type, target: type) -> bool:
    try:
        return issubclass(candidate, target)
    except TypeError:
        return False


def _elements_fit(declared_type: Any, value: Any) -> bool:
    """Check a collection's elements against the declared type's arguments."""
    declared_type = unwrap_annotated(declared_type)[0]
    origin = get_origin(declared_type)
    args = get_args(declared_type)
    if not isinstance(origin, type) or not args:
        return True
    if not isinstance(value, collections.abc.Collection) or isinstance(value, (str, bytes)):
        return True

    if issubclass(origin, collections.abc.Mapping):
        if len(args) != 2 or not isinstance(value, collections.abc.Mapping):
            return True
        return all(
            is_assignable_value(args[0], key) and is_assignable_value(args[1], item)
            for key, item in value.items()
        )
    if issubclass(origin, tuple):
        if len(args) == 2 and args[1] is Ellipsis:
            return all(is_assignable_value(args[0], item) for item in value)
        return len(value) == len(args) and all(
            is_assignable_value(arg, item) for arg, item in zip(args, value)
        )
    if issubclass(origin, collections.abc.Iterable) and len(args) == 1:
        return all(is_assignable_value(args[0], item) for item in value)
    return True

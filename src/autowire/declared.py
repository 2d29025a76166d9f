"""Argument values declared for a target, and their resolution.

Declared values come from whatever describes a target (configuration,
decorators, a builder API). They are either indexed, binding to a parameter
position, or generic, binding to the first parameter they fit. Each value may
carry a type hint and a parameter name to narrow what it binds to.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from autowire.errors import DefinitionError
from autowire.type_matching import is_assignable_value, matches_type_name

__all__ = [
    "ValueHolder",
    "ValueReference",
    "DeclaredArguments",
    "SimpleValueResolver",
]

_UNSET = object()


@dataclass(frozen=True)
class ValueReference:
    """A declared value standing for another named value, looked up when resolved."""

    name: str


@dataclass(frozen=True, eq=False)
class ValueHolder:
    """A single declared argument value.

    Holders compare by identity: a holder consumed by one parameter must not be
    confused with an equal holder declared separately.

    Attributes:
        value: The raw declared value.
        type_hint: Optional type, or type name, the value is meant for.
        name: Optional name of the parameter the value is meant for.
        converted_value: The value already converted for its parameter, if the
            declaration supplied one.
        source: The declaration this holder was resolved from, if any.
    """

    value: Any
    type_hint: Any = None
    name: Optional[str] = None
    converted_value: Any = _UNSET
    source: Optional["ValueHolder"] = None

    @property
    def is_converted(self) -> bool:
        return self.converted_value is not _UNSET

    def resolved_to(self, value: Any) -> "ValueHolder":
        """A copy holding ``value`` that remembers this holder as its source."""
        return ValueHolder(value, self.type_hint, self.name, source=self)


class DeclaredArguments:
    """Indexed and generic declared argument values for one target.

    Example:
        >>> args = DeclaredArguments({0: "5"}, [ValueHolder("x", name="label")])
        >>> args.argument_count
        2
    """

    def __init__(
        self,
        indexed: Optional[Mapping[int, Any]] = None,
        generic: Optional[Iterable[Any]] = None,
    ):
        self._indexed: dict[int, ValueHolder] = {}
        self._generic: list[ValueHolder] = []
        for index, value in (indexed or {}).items():
            self.add_indexed(index, value)
        for value in generic or ():
            self.add_generic(value)

    def add_indexed(
        self, index: int, value: Any, type_hint: Any = None, name: Optional[str] = None
    ) -> None:
        self._indexed[index] = _as_holder(value, type_hint, name)

    def add_generic(self, value: Any, type_hint: Any = None, name: Optional[str] = None) -> None:
        holder = _as_holder(value, type_hint, name)
        if holder not in self._generic:
            self._generic.append(holder)

    @property
    def indexed(self) -> dict[int, ValueHolder]:
        return dict(self._indexed)

    @property
    def generic(self) -> list[ValueHolder]:
        return list(self._generic)

    @property
    def argument_count(self) -> int:
        return len(self._indexed) + len(self._generic)

    def is_empty(self) -> bool:
        return self.argument_count == 0

    def get_indexed(
        self, index: int, required_type: Any = None, required_name: Optional[str] = None
    ) -> Optional[ValueHolder]:
        """The holder declared at ``index``, if its hint and name fit the parameter."""
        holder = self._indexed.get(index)
        if holder is None:
            return None
        if holder.type_hint is not None and not (
            required_type is not None and matches_type_name(required_type, holder.type_hint)
        ):
            return None
        if holder.name is not None and not (
            required_name is not None and (required_name == "" or required_name == holder.name)
        ):
            return None
        return holder

    def get_generic(
        self,
        required_type: Any = None,
        required_name: Optional[str] = None,
        used: Optional[set[ValueHolder]] = None,
    ) -> Optional[ValueHolder]:
        """The first unused generic holder that fits the given type and name.

        Named holders only match a known parameter name, typed holders only
        match a known parameter type, and holders with neither must hold a
        value assignable to the required type.
        """
        for holder in self._generic:
            if used is not None and holder in used:
                continue
            if holder.name is not None and (
                required_name is None or (required_name != "" and required_name != holder.name)
            ):
                continue
            if holder.type_hint is not None and (
                required_type is None or not matches_type_name(required_type, holder.type_hint)
            ):
                continue
            if (
                required_type is not None
                and holder.type_hint is None
                and holder.name is None
                and not is_assignable_value(required_type, holder.value)
            ):
                continue
            return holder
        return None

    def get_argument_value(
        self,
        index: int,
        required_type: Any = None,
        required_name: Optional[str] = None,
        used: Optional[set[ValueHolder]] = None,
    ) -> Optional[ValueHolder]:
        """Look for an indexed holder first, then a fitting generic one."""
        holder = self.get_indexed(index, required_type, required_name)
        if holder is None:
            holder = self.get_generic(required_type, required_name, used)
        return holder


class SimpleValueResolver:
    """Resolves references and string placeholders in declared values.

    Args:
        provider: Injectable provider used to look up :class:`ValueReference`
            targets by name.
        properties: Values substituted for ``${key}`` placeholders. A
            placeholder may carry a default as ``${key:default}``.
    """

    _PLACEHOLDER = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")

    def __init__(self, provider: Any = None, properties: Optional[Mapping[str, Any]] = None):
        self._provider = provider
        self._properties = dict(properties or {})

    def resolve_value(self, value: Any) -> Any:
        if isinstance(value, ValueReference):
            if self._provider is None:
                raise DefinitionError(f"Cannot resolve reference to '{value.name}' without a provider")
            return self._provider.lookup(value.name)
        if isinstance(value, str):
            return self.evaluate_string(value)
        if isinstance(value, list):
            return [self.resolve_value(item) for item in value]
        if isinstance(value, tuple):
            return tuple(self.resolve_value(item) for item in value)
        if isinstance(value, dict):
            return {key: self.resolve_value(item) for key, item in value.items()}
        return value

    def evaluate_string(self, value: str) -> Union[str, Any]:
        match = self._PLACEHOLDER.fullmatch(value)
        if match:
            # A lone placeholder keeps the property's own type
            return self._lookup(match.group(1), match.group(2))
        return self._PLACEHOLDER.sub(
            lambda m: str(self._lookup(m.group(1), m.group(2))), value
        )

    def _lookup(self, key: str, default: Optional[str]) -> Any:
        if key in self._properties:
            return self._properties[key]
        if default is not None:
            return default
        raise DefinitionError(f"Could not resolve placeholder '{key}' in declared value")


def _as_holder(value: Any, type_hint: Any, name: Optional[str]) -> ValueHolder:
    if isinstance(value, ValueHolder):
        return value
    return ValueHolder(value, type_hint, name)

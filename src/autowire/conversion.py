"""Default type converter for declared argument values."""

import collections.abc
import enum
import inspect
from decimal import Decimal, InvalidOperation
from pathlib import PurePath
from typing import Any, Optional, get_args

from autowire.domain import Parameter
from autowire.errors import ConversionFailure
from autowire.type_matching import (
    is_assignable_value,
    runtime_class,
    unwrap_annotated,
    unwrap_optional,
)

__all__ = ["SimpleTypeConverter"]

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})


class SimpleTypeConverter:
    """Converts declared values to parameter types.

    Values already assignable pass through unchanged. Strings convert to
    numbers, booleans, paths and enum members; iterables convert to the
    declared collection type, converting their elements when the collection
    type is parameterised.
    """

    def convert(self, value: Any, target_type: Any, parameter: Optional[Parameter] = None) -> Any:
        declared_type = unwrap_optional(unwrap_annotated(target_type)[0])
        target = runtime_class(declared_type)
        if is_assignable_value(target_type, value) and not _has_typed_elements(target, declared_type, value):
            return value
        if value is None:
            raise ConversionFailure(value, target_type, "None is not allowed")
        if target is None:
            raise ConversionFailure(value, target_type)

        if target is bool:
            return self._to_bool(value, target_type)
        if target in (int, float, complex, Decimal):
            return self._to_number(value, target, target_type)
        if target is str and isinstance(value, (int, float, Decimal, PurePath, enum.Enum)):
            return value.name if isinstance(value, enum.Enum) else str(value)
        if issubclass(target, PurePath) and isinstance(value, str):
            return target(value)
        if issubclass(target, enum.Enum):
            return self._to_enum(value, target, target_type)
        if issubclass(target, collections.abc.Mapping) and isinstance(value, collections.abc.Mapping):
            return self._to_mapping(value, declared_type, target)
        if (
            issubclass(target, collections.abc.Iterable)
            and isinstance(value, collections.abc.Iterable)
            and not isinstance(value, (str, bytes, collections.abc.Mapping))
        ):
            return self._to_collection(value, declared_type, target)

        raise ConversionFailure(value, target_type)

    def _to_bool(self, value: Any, target_type: Any) -> bool:
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        elif isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise ConversionFailure(value, target_type)

    def _to_number(self, value: Any, target: type, target_type: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (str, int, float, Decimal)):
            raise ConversionFailure(value, target_type)
        if target is int and isinstance(value, (float, Decimal)) and value != int(value):
            raise ConversionFailure(value, target_type, "would lose precision")
        try:
            return target(value.strip() if isinstance(value, str) else value)
        except (ValueError, TypeError, InvalidOperation) as ex:
            raise ConversionFailure(value, target_type, str(ex)) from ex

    def _to_enum(self, value: Any, target: type, target_type: Any) -> enum.Enum:
        if isinstance(value, str) and value in target.__members__:
            return target[value]
        try:
            return target(value)
        except ValueError as ex:
            raise ConversionFailure(value, target_type, str(ex)) from ex

    def _to_mapping(self, value: collections.abc.Mapping, declared_type: Any, target: type) -> Any:
        args = get_args(declared_type)
        key_type, value_type = args if len(args) == 2 else (None, None)
        converted = {
            self.convert(key, key_type): self.convert(item, value_type)
            for key, item in value.items()
        }
        if target is dict or inspect.isabstract(target):
            return converted
        return target(converted)

    def _to_collection(self, value: collections.abc.Iterable, declared_type: Any, target: type) -> Any:
        args = get_args(declared_type)
        if target is tuple and len(args) == 2 and args[1] is Ellipsis:
            element_types = None
            element_type = args[0]
        elif target is tuple and args:
            element_types = args
            element_type = None
        else:
            element_types = None
            element_type = args[0] if args else None

        items = list(value)
        if element_types is not None:
            if len(element_types) != len(items):
                raise ConversionFailure(value, declared_type, "wrong number of elements")
            items = [self.convert(item, item_type) for item, item_type in zip(items, element_types)]
        else:
            items = [self.convert(item, element_type) for item in items]

        if not inspect.isabstract(target):
            return target(items)
        if issubclass(target, collections.abc.Set):
            return set(items)
        return items


def _has_typed_elements(target: Optional[type], declared_type: Any, value: Any) -> bool:
    return (
        target is not None
        and bool(get_args(declared_type))
        and issubclass(target, collections.abc.Collection)
        and isinstance(value, collections.abc.Iterable)
        and not isinstance(value, (str, bytes))
        and (issubclass(target, collections.abc.Mapping) or not isinstance(value, collections.abc.Mapping))
    )

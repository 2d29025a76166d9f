"""Pairing a candidate's parameters with declared and injected values."""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from loguru import logger

from autowire.declared import DeclaredArguments, ValueHolder
from autowire.domain import DependencyDescriptor, Executable, InjectionPoint
from autowire.errors import (
    ConversionFailure,
    DependencyError,
    IllegalStateError,
    MultipleCandidatesError,
    NotFoundError,
    UnsatisfiedError,
)
from autowire.injection_point import InjectionPointContext
from autowire.type_matching import (
    IMPOSSIBLE_WEIGHT,
    empty_collection_for,
    is_assignable_value,
    runtime_class,
    type_difference_weight,
    unwrap_annotated,
    unwrap_optional,
)

__all__ = ["AUTOWIRED_ARGUMENT", "ArgumentSlots", "ArgumentMatcher"]

RAW_ARGUMENT_BIAS = 1024


class _AutowiredArgument:
    def __repr__(self) -> str:
        return "<autowired>"


AUTOWIRED_ARGUMENT = _AutowiredArgument()
"""Recipe entry meaning "ask the injectable provider again when reused"."""


@dataclass
class ArgumentSlots:
    """Per-parameter outcome of matching one candidate.

    Attributes:
        raw: Values before conversion.
        converted: Values the candidate is invoked with.
        prepared: The recipe: converted literals, declared sources to
            re-resolve, or :data:`AUTOWIRED_ARGUMENT`.
        recipe_required: Whether the recipe, rather than the converted
            values, must be cached.
    """

    raw: list[Any]
    converted: list[Any]
    prepared: list[Any]
    recipe_required: bool = False

    @classmethod
    def of_size(cls, size: int) -> "ArgumentSlots":
        return cls([None] * size, [None] * size, [None] * size)

    @classmethod
    def explicit(cls, args: list[Any]) -> "ArgumentSlots":
        args = list(args)
        return cls(args, args, args)

    @property
    def size(self) -> int:
        return len(self.converted)

    def type_difference_weight(self, parameter_types: tuple[Any, ...]) -> int:
        """Type distance of the converted or the raw values, whichever is closer.

        Raw values are biased so an unconverted match wins over an equally
        close converted one.
        """
        converted_weight = type_difference_weight(parameter_types, self.converted)
        raw_weight = type_difference_weight(parameter_types, self.raw) - RAW_ARGUMENT_BIAS
        return min(raw_weight, converted_weight)

    def assignability_weight(self, parameter_types: tuple[Any, ...]) -> int:
        for declared_type, value in zip(parameter_types, self.converted):
            if not is_assignable_value(declared_type, value):
                return IMPOSSIBLE_WEIGHT
        for declared_type, value in zip(parameter_types, self.raw):
            if not is_assignable_value(declared_type, value):
                return IMPOSSIBLE_WEIGHT - 512
        return IMPOSSIBLE_WEIGHT - 1024


@dataclass
class _MatchState:
    used: set[ValueHolder] = field(default_factory=set)
    autowired_names: set[str] = field(default_factory=set)


class ArgumentMatcher:
    """Builds :class:`ArgumentSlots` for a candidate.

    Args:
        provider: Supplies injectable values.
        converter: Converts declared values to parameter types.
        registrar: Receives "target depends on value" edges; optional.
        injection_points: Context tracking the parameter being injected.
    """

    def __init__(
        self,
        provider: Any,
        converter: Any,
        registrar: Any = None,
        injection_points: Optional[InjectionPointContext] = None,
    ):
        self._provider = provider
        self._converter = converter
        self._registrar = registrar
        self._injection_points = injection_points or InjectionPointContext()

    def match(
        self,
        target_name: str,
        candidate: Executable,
        declared: Optional[DeclaredArguments],
        autowiring: bool = False,
        fallback: bool = False,
    ) -> Union[ArgumentSlots, UnsatisfiedError]:
        """Match ``candidate``, or explain why it does not fit.

        A rejection is returned, not raised, so the caller can move on to the
        next candidate. Ambiguous injections and injection point misuse are
        raised: no other candidate could fix them.

        Raises:
            MultipleCandidatesError: If an injected parameter has several
                indistinguishable candidates.
            IllegalStateError: If an ``InjectionPoint`` parameter is resolved
                outside of any injection.
        """
        slots = ArgumentSlots.of_size(candidate.parameter_count)
        state = _MatchState()
        names = candidate.parameter_names

        for index, parameter in enumerate(candidate.parameters):
            point = InjectionPoint(candidate, index)
            holder = None
            if declared is not None:
                holder = declared.get_argument_value(
                    index, parameter.declared_type, names[index], state.used
                )
                # An untyped value may still fit after conversion, e.g. "5" -> int
                if holder is None and (
                    not autowiring or candidate.parameter_count == declared.argument_count
                ):
                    holder = declared.get_generic(None, None, state.used)

            if holder is not None:
                state.used.add(holder)
                rejection = self._bind_declared(target_name, point, holder, slots)
                if rejection is not None:
                    return rejection
                continue

            if not autowiring:
                return UnsatisfiedError(
                    target_name,
                    point,
                    f"Ambiguous argument values for parameter of type "
                    f"[{_type_name(parameter.declared_type)}] - did you specify the "
                    "correct references as arguments?",
                )
            try:
                value = self.resolve_autowired_argument(
                    point, target_name, state.autowired_names, fallback
                )
            except (MultipleCandidatesError, IllegalStateError):
                raise
            except DependencyError as ex:
                rejection = UnsatisfiedError(target_name, point, str(ex))
                rejection.__cause__ = ex
                return rejection

            slots.raw[index] = value
            slots.converted[index] = value
            slots.prepared[index] = AUTOWIRED_ARGUMENT
            slots.recipe_required = True

        for autowired_name in sorted(state.autowired_names):
            if self._registrar is not None:
                self._registrar.register_dependency(autowired_name, target_name)
            logger.debug(
                f"Autowiring by type from '{target_name}' via {candidate.kind.replace('_', ' ')} "
                f"to value named '{autowired_name}'"
            )
        return slots

    def resolve_autowired_argument(
        self,
        point: InjectionPoint,
        target_name: str,
        autowired_names: Optional[set[str]],
        fallback: bool,
    ) -> Any:
        """Obtain an injected value for ``point``.

        An ``InjectionPoint`` parameter receives the point currently being
        injected. Otherwise the provider is asked, with ``point`` pushed as
        the current injection point for the duration of the call.

        If nothing is found, ``fallback`` substitutes an empty collection for
        collection-typed parameters, and parameters with a default value
        receive their default.
        """
        parameter = point.parameter
        if _is_injection_point_type(parameter.declared_type):
            return self._injection_points.require(point)

        descriptor = DependencyDescriptor(point, required=not parameter.has_default)
        previous = self._injection_points.push(point)
        try:
            return self._provider.resolve(descriptor, target_name, autowired_names)
        except NotFoundError:
            if fallback:
                empty = empty_collection_for(parameter.declared_type)
                if empty is not None:
                    return empty
            if parameter.has_default:
                return parameter.default
            raise
        finally:
            self._injection_points.restore(previous)

    def _bind_declared(
        self,
        target_name: str,
        point: InjectionPoint,
        holder: ValueHolder,
        slots: ArgumentSlots,
    ) -> Optional[UnsatisfiedError]:
        index = point.index
        parameter = point.parameter
        if holder.is_converted:
            converted = holder.converted_value
            slots.prepared[index] = converted
        else:
            try:
                converted = self._converter.convert(holder.value, parameter.declared_type, parameter)
            except ConversionFailure as ex:
                rejection = UnsatisfiedError(
                    target_name,
                    point,
                    f"Could not convert argument value of type [{type(holder.value).__name__}] "
                    f"to required type [{_type_name(parameter.declared_type)}]: {ex}",
                )
                rejection.__cause__ = ex
                return rejection
            if holder.source is not None:
                slots.recipe_required = True
                slots.prepared[index] = holder.source.value
            else:
                slots.prepared[index] = converted

        slots.converted[index] = converted
        slots.raw[index] = holder.value
        return None


def _is_injection_point_type(declared_type: Any) -> bool:
    target = runtime_class(unwrap_optional(unwrap_annotated(declared_type)[0]))
    return target is not None and target is not object and issubclass(target, InjectionPoint)


def _type_name(declared_type: Any) -> str:
    if declared_type is None:
        return "Any"
    return getattr(declared_type, "__name__", None) or str(declared_type)

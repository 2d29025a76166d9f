"""Domain models used throughout the engine."""

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from autowire.declared import DeclaredArguments

__all__ = [
    "Parameter",
    "Executable",
    "InjectionPoint",
    "DependencyDescriptor",
    "TargetDefinition",
    "CONSTRUCTOR",
    "FACTORY_METHOD",
]

CONSTRUCTOR = "constructor"
FACTORY_METHOD = "factory_method"


@dataclass(frozen=True)
class Parameter:
    """A formal parameter of an executable.

    Attributes:
        name: The parameter name (explicitly declared names take precedence
            over the signature's own names).
        declared_type: The resolved annotation, with any ``Annotated`` wrapper
            removed; ``None`` when the parameter is not annotated.
        qualifier: The name of the value this parameter asks for, taken from
            ``Annotated[T, "name"]`` metadata.
        kind: The ``inspect.Parameter`` kind.
        default: The default value, or ``inspect.Parameter.empty``.
    """

    name: str
    declared_type: Optional[Any]
    qualifier: Optional[str] = None
    kind: Any = inspect.Parameter.POSITIONAL_OR_KEYWORD
    default: Any = field(default=inspect.Parameter.empty, compare=False)

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


@dataclass(frozen=True)
class Executable:
    """An immutable handle to a constructor or factory method.

    Attributes:
        func: The callable invoked to produce an instance. Instance factory
            methods are stored unbound and receive the factory object first.
        name: The member name (``__init__`` for a type's regular constructor).
        parameters: Ordered formal parameters, excluding ``self``/``cls`` and
            variadic parameters.
        declaring_type: The class that declares the member.
        is_public: Whether the member name is public.
        is_static: Whether the executable can be invoked without a factory object.
        kind: Either ``"constructor"`` or ``"factory_method"``.
        return_type: The declared return annotation, if any.
        declared_parameter_names: Names supplied through ``@parameter_names``.
    """

    func: Callable
    name: str
    parameters: tuple[Parameter, ...]
    declaring_type: type
    is_public: bool = True
    is_static: bool = True
    kind: str = CONSTRUCTOR
    return_type: Any = field(default=None, compare=False)
    declared_parameter_names: Optional[tuple[str, ...]] = None

    @property
    def parameter_count(self) -> int:
        return len(self.parameters)

    @property
    def parameter_types(self) -> tuple[Any, ...]:
        return tuple(parameter.declared_type for parameter in self.parameters)

    @property
    def parameter_names(self) -> tuple[str, ...]:
        if self.declared_parameter_names is not None:
            return self.declared_parameter_names
        return tuple(parameter.name for parameter in self.parameters)

    def invoke(self, args: list[Any], factory_instance: Any = None) -> Any:
        """Call the executable with positional ``args``.

        Keyword-only parameters are passed by keyword, all others positionally.
        """
        positional = []
        keywords = {}
        for parameter, arg in zip(self.parameters, args):
            if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                keywords[parameter.name] = arg
            else:
                positional.append(arg)

        if factory_instance is not None:
            return self.func(factory_instance, *positional, **keywords)
        return self.func(*positional, **keywords)

    def __str__(self) -> str:
        types = ", ".join(_describe_type(t) for t in self.parameter_types)
        return f"{self.declaring_type.__name__}.{self.name}({types})"


@dataclass(frozen=True)
class InjectionPoint:
    """Identifies the parameter currently being resolved."""

    executable: Executable
    index: int

    @property
    def parameter(self) -> Parameter:
        return self.executable.parameters[self.index]

    def __str__(self) -> str:
        return (
            f"parameter {self.index} '{self.executable.parameter_names[self.index]}' "
            f"of {self.executable}"
        )


@dataclass(frozen=True)
class DependencyDescriptor:
    """What an injectable provider is asked to supply.

    Attributes:
        injection_point: The parameter being injected.
        required: False when the parameter declares a default value.
    """

    injection_point: InjectionPoint
    required: bool = True

    @property
    def declared_type(self) -> Any:
        return self.injection_point.parameter.declared_type

    @property
    def qualifier(self) -> Optional[str]:
        return self.injection_point.parameter.qualifier

    @property
    def parameter_name(self) -> str:
        return self.injection_point.executable.parameter_names[self.injection_point.index]


@dataclass(frozen=True)
class TargetDefinition:
    """Describes one instantiable target and how it may be resolved.

    Attributes:
        name: Unique name of the target; the resolution cache is keyed by it.
        target_type: The type to construct, or the class declaring a static
            factory method.
        factory_name: Name of a factory object to look up; its factory method
            is invoked on that object.
        factory_method_name: Name of the factory method, if instantiating
            through one.
        declared_arguments: Indexed and generic argument values declared for
            this target.
        autowire: Whether unmatched parameters may be injected by type.
        lenient: Lenient resolution scores by type distance and tolerates ties;
            strict resolution requires assignability and rejects ties.
        allow_non_public: Whether non-public members are candidates.
        unique_factory_method: A factory method already known to be the only
            candidate, skipping enumeration.
    """

    name: str
    target_type: Optional[type] = None
    factory_name: Optional[str] = None
    factory_method_name: Optional[str] = None
    declared_arguments: DeclaredArguments = field(default_factory=DeclaredArguments)
    autowire: bool = False
    lenient: bool = True
    allow_non_public: bool = True
    unique_factory_method: Optional[Executable] = None

    @property
    def has_declared_arguments(self) -> bool:
        return not self.declared_arguments.is_empty()

    def is_factory_method(self, candidate: Executable) -> bool:
        return candidate.name == self.factory_method_name or (
            self.factory_method_name in getattr(candidate.func, "__factory_method_names__", ())
        )


def _describe_type(declared_type: Any) -> str:
    if declared_type is None:
        return "Any"
    return getattr(declared_type, "__name__", None) or str(declared_type)

"""Exceptions raised while resolving and instantiating targets.

Every error derives from :class:`DependencyError`. Errors local to a single
candidate (:class:`UnsatisfiedError`, :class:`ConversionFailure`) are collected
by the selector and only surface through :class:`NoMatchError`; the rest
propagate to the caller.
"""

from typing import Any, Optional, Sequence

__all__ = [
    "DependencyError",
    "DefinitionError",
    "ReflectionFailure",
    "ConversionFailure",
    "UnsatisfiedError",
    "NoMatchError",
    "AmbiguousError",
    "InstantiationFailure",
    "IllegalStateError",
    "NotFoundError",
    "MultipleCandidatesError",
]


class DependencyError(Exception):
    """Raised when a target's dependency cannot be resolved or is misdeclared."""

    pass


class DefinitionError(DependencyError):
    """Raised when a target definition is internally inconsistent."""

    pass


class ReflectionFailure(DependencyError):
    """Raised when a type or callable cannot be introspected."""

    def __init__(self, target: Any, message: str):
        self.target = target
        super().__init__(f"Failed to introspect {target!r}: {message}")


class ConversionFailure(DependencyError):
    """Raised by a type converter when a value cannot be coerced."""

    def __init__(self, value: Any, required_type: Any, message: Optional[str] = None):
        self.value = value
        self.required_type = required_type
        detail = f": {message}" if message else ""
        super().__init__(
            f"Cannot convert value of type [{type(value).__name__}] "
            f"to required type [{_type_name(required_type)}]{detail}"
        )


class UnsatisfiedError(DependencyError):
    """A specific candidate could not bind a specific parameter.

    Attributes:
        target_name: Name of the target being resolved.
        injection_point: The parameter that could not be satisfied, if known.
    """

    def __init__(self, target_name: str, injection_point: Any, message: str):
        self.target_name = target_name
        self.injection_point = injection_point
        where = f" through {injection_point}" if injection_point is not None else ""
        super().__init__(
            f"Unsatisfied dependency of '{target_name}'{where}: {message}"
        )


class NoMatchError(DependencyError):
    """No candidate satisfied arity and type constraints.

    Attributes:
        causes: The per-candidate rejections collected during the search, in
            the order they occurred.
    """

    def __init__(self, target_name: str, message: str, causes: Sequence[DependencyError] = ()):
        self.target_name = target_name
        self.causes = list(causes)
        if self.causes:
            reasons = "; ".join(str(cause) for cause in self.causes)
            message = f"{message} Rejected candidates: {reasons}"
        super().__init__(f"Error resolving '{target_name}': {message}")


class AmbiguousError(DependencyError):
    """Two or more candidates matched equally well in strict mode."""

    def __init__(self, target_name: str, candidates: Sequence[Any]):
        self.target_name = target_name
        self.candidates = list(candidates)
        super().__init__(
            f"Ambiguous candidates found for '{target_name}' "
            "(hint: specify index/type/name arguments for simple parameters "
            f"to avoid type ambiguities): {[str(candidate) for candidate in self.candidates]}"
        )


class InstantiationFailure(DependencyError):
    """The chosen candidate raised, or could not be invoked."""

    def __init__(self, target_name: str, message: str, cause: Optional[BaseException] = None):
        self.target_name = target_name
        self.cause = cause
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"Error instantiating '{target_name}': {message}{detail}")


class IllegalStateError(DependencyError):
    """The engine was used in a state where the operation is meaningless."""

    pass


class NotFoundError(DependencyError):
    """Raised by an injectable provider when no candidate value exists."""

    def __init__(self, key: Any, message: Optional[str] = None):
        self.key = key
        super().__init__(message or f"No candidate available for {_type_name(key)}")


class MultipleCandidatesError(DependencyError):
    """Raised by an injectable provider when candidates cannot be told apart."""

    def __init__(self, key: Any, names: Sequence[str]):
        self.key = key
        self.names = list(names)
        super().__init__(
            f"Multiple candidates for dependency on {_type_name(key)}: {self.names}"
        )


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", None) or str(target)

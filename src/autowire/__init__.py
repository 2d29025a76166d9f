"""Autowire constructor and factory method resolution.

Autowire decides how to build an object: given a target definition, it picks
the constructor or factory method that best fits the argument values declared
for the target and the values available for injection, converts and injects
the arguments, and invokes the winner. Resolutions are cached per target, so
building the same target again skips the search while still fetching fresh
values for anything that was injected.

Key Features:
    - Indexed, typed and named declared argument values
    - Injection by type, by ``Annotated`` qualifier or by parameter name
    - Lenient (closest type) and strict (assignable, unambiguous) scoring
    - Static and instance factory methods, including aliased overloads
    - Thread-safe per-target resolution cache

Basic Usage:
    >>> from autowire.builders import make_resolver
    >>> from autowire.domain import TargetDefinition
    >>> from autowire.value_pool import ValuePool
    >>>
    >>> pool = ValuePool({"db": Database()})
    >>> resolver = make_resolver(pool)
    >>> repository = resolver.instantiate(TargetDefinition("repository", Repository, autowire=True))

The package consists of several core modules:
    - resolver: Orchestrates constructor and factory method resolution
    - introspection: Enumerates candidates and the decorators that mark them
    - matcher: Pairs parameters with declared and injected values
    - selector: Scores candidates and detects ambiguity
    - cache: Per-target resolution cache
    - builders: High-level construction functions
    - domain: Core domain models (Executable, TargetDefinition, InjectionPoint)
    - errors: Engine-specific exceptions
"""

import itertools

import pytest

from autowire.builders import make_resolver
from autowire.declared import DeclaredArguments, ValueHolder
from autowire.dependents import DependentsRegistry
from autowire.domain import TargetDefinition
from autowire.errors import (
    AmbiguousError,
    DefinitionError,
    IllegalStateError,
    InstantiationFailure,
    MultipleCandidatesError,
    NoMatchError,
    NotFoundError,
)
from autowire.introspection import enumerate_constructors
from autowire.matcher import AUTOWIRED_ARGUMENT
from autowire.resolver import ConstructorResolver
from autowire.value_pool import ValuePool
from model import (
    Car,
    Clocked,
    Engine,
    Exploding,
    Garage,
    NamedLogger,
    Pair,
    Plain,
    Plugin,
    PluginHost,
    PluginRack,
    Service,
    Settings,
    Shelf,
    Span,
    Tick,
    Tuned,
    Wheel,
    Widget,
)


@pytest.fixture
def pool():
    return ValuePool()


@pytest.fixture
def registry():
    return DependentsRegistry()


@pytest.fixture
def resolver(pool, registry):
    return make_resolver(pool, {"db.port": 5432}, registry)


class LoggerProvider:
    """Builds a NamedLogger for anyone asking for one; has nothing else."""

    def __init__(self):
        self.resolver = None
        self.seen = []

    def resolve(self, descriptor, requesting_name, autowired_names=None):
        self.seen.append(self.resolver.injection_points.current())
        if descriptor.declared_type is NamedLogger:
            return self.resolver.instantiate(TargetDefinition("logger", NamedLogger, autowire=True))
        raise NotFoundError(descriptor.declared_type)

    def lookup(self, name):
        raise NotFoundError(name)


@pytest.fixture
def logger_provider():
    provider = LoggerProvider()
    provider.resolver = ConstructorResolver(provider)
    return provider


def test_single_no_argument_constructor_is_used_directly(resolver):
    instance = resolver.instantiate(TargetDefinition("plain", Plain))

    assert isinstance(instance, Plain)
    entry = resolver.cache.load("plain")
    assert entry.executable.name == "__init__"
    assert entry.resolved_arguments == ()


def test_missing_target_type_is_a_definition_error(resolver):
    with pytest.raises(DefinitionError, match="'nothing' declares no target type"):
        resolver.instantiate(TargetDefinition("nothing"))


def test_autowires_the_greediest_satisfiable_constructor(pool, registry, resolver):
    engine, wheel = Engine(), Wheel()
    pool.register("engine", engine)
    pool.register("wheel", wheel)

    car = resolver.instantiate(TargetDefinition("car", Car, autowire=True))

    assert car.engine is engine
    assert car.wheel is wheel
    assert registry.dependents_of("engine") == {"car"}
    assert registry.dependencies_of("car") == {"engine", "wheel"}


def test_falls_back_to_a_constructor_with_fewer_parameters(pool, resolver):
    engine = Engine()
    pool.register("engine", engine)

    car = resolver.instantiate(TargetDefinition("car", Car, autowire=True))

    assert car.engine is engine
    assert car.wheel is None
    assert resolver.cache.load("car").executable.name == "bare"


def test_qualified_parameter_is_injected_by_name(pool, resolver):
    primary, spare = Car(Engine(), Wheel()), Car(Engine(), Wheel())
    pool.register("spare_car", spare)
    pool.register("primary_car", primary)

    garage = resolver.instantiate(TargetDefinition("garage", Garage, autowire=True))

    assert garage.car is primary


def test_parameter_name_breaks_ties_between_injection_candidates(pool, resolver):
    pool.register("backup", Engine())
    pool.register("engine", Engine())

    tuned = resolver.instantiate(TargetDefinition("tuned", Tuned, autowire=True))

    assert tuned.engine is pool.lookup("engine")
    assert tuned.retries == 3


def test_indistinguishable_injection_candidates_are_not_retried(pool, resolver):
    pool.register("main", Engine())
    pool.register("backup", Engine())

    with pytest.raises(MultipleCandidatesError, match=r"\['main', 'backup'\]"):
        resolver.instantiate(TargetDefinition("tuned", Tuned, autowire=True))


def test_declared_argument_selects_the_constructor_it_satisfies(resolver):
    definition = TargetDefinition("widget", Widget, declared_arguments=DeclaredArguments({0: 5}))

    widget = resolver.instantiate(definition)

    assert widget.size == 5
    assert widget.label == "default"


def test_autowiring_completes_the_greedier_constructor(pool, resolver):
    pool.register("label", "hello")
    definition = TargetDefinition(
        "widget", Widget, declared_arguments=DeclaredArguments({0: 5}), autowire=True
    )

    widget = resolver.instantiate(definition)

    assert (widget.size, widget.label) == (5, "hello")


def test_named_declared_values_bind_by_parameter_name(resolver):
    declared = DeclaredArguments(
        generic=[
            ValueHolder("8080", name="port"),
            ValueHolder("localhost", name="host"),
            ValueHolder("yes", name="debug"),
        ]
    )

    settings = resolver.instantiate(TargetDefinition("settings", Settings, declared_arguments=declared))

    assert (settings.host, settings.port, settings.debug) == ("localhost", 8080, True)


def test_placeholders_are_resolved_before_matching(resolver):
    declared = DeclaredArguments(
        generic=[
            ValueHolder("${db.host:localhost}", name="host"),
            ValueHolder("${db.port}", name="port"),
            ValueHolder("false", name="debug"),
        ]
    )

    settings = resolver.instantiate(TargetDefinition("settings", Settings, declared_arguments=declared))

    assert (settings.host, settings.port, settings.debug) == ("localhost", 5432, False)


def test_declared_parameter_names_override_signature_names(resolver):
    declared = DeclaredArguments(generic=[ValueHolder(2, name="right"), ValueHolder(1, name="left")])

    span = resolver.instantiate(TargetDefinition("span", Span, declared_arguments=declared))

    assert (span.start, span.end) == (1, 2)


def test_negative_declared_index_is_rejected(resolver):
    definition = TargetDefinition("widget", Widget, declared_arguments=DeclaredArguments({-1: 3}))

    with pytest.raises(DefinitionError, match="Invalid declared argument index -1 for 'widget'"):
        resolver.instantiate(definition)


def test_lenient_resolution_picks_the_first_of_equally_close_candidates(resolver):
    definition = TargetDefinition("pair", Pair, declared_arguments=DeclaredArguments(generic=[5, "five"]))

    pair = resolver.instantiate(definition)

    assert (pair.via, pair.count, pair.name) == ("init", 5, "five")


def test_strict_resolution_rejects_equally_close_candidates(resolver):
    definition = TargetDefinition(
        "pair", Pair, declared_arguments=DeclaredArguments(generic=[5, "five"]), lenient=False
    )

    with pytest.raises(AmbiguousError, match="Ambiguous candidates found for 'pair'") as excinfo:
        resolver.instantiate(definition)

    assert [candidate.name for candidate in excinfo.value.candidates] == ["__init__", "swapped"]


def test_resolution_is_deterministic():
    definition = TargetDefinition("pair", Pair, declared_arguments=DeclaredArguments(generic=[5, "five"]))
    first, second = make_resolver(), make_resolver()

    first.instantiate(definition)
    second.instantiate(definition)

    assert first.cache.load("pair").executable == second.cache.load("pair").executable


def test_cached_resolution_builds_the_same_as_a_fresh_one(resolver):
    definition = TargetDefinition("widget", Widget, declared_arguments=DeclaredArguments({0: "7"}))

    first = resolver.instantiate(definition)
    second = resolver.instantiate(definition)
    fresh = make_resolver().instantiate(definition)

    assert vars(first) == vars(second) == vars(fresh) == {"size": 7, "label": "default"}
    assert resolver.cache.load("widget").prepared_arguments == ("7",)


def test_preconverted_values_are_cached_as_final_arguments(resolver):
    declared = DeclaredArguments({0: ValueHolder("7", converted_value=7)})

    resolver.instantiate(TargetDefinition("widget", Widget, declared_arguments=declared))

    entry = resolver.cache.load("widget")
    assert not entry.recipe_required
    assert entry.resolved_arguments == (7,)


def test_cached_recipe_fetches_fresh_injected_values(pool, resolver):
    numbers = itertools.count()
    pool.register_supplier("tick", lambda: Tick(next(numbers)), [Tick])
    definition = TargetDefinition("clocked", Clocked, autowire=True)

    first = resolver.instantiate(definition)
    second = resolver.instantiate(definition)

    assert (first.tick.number, second.tick.number) == (0, 1)
    assert resolver.cache.load("clocked").prepared_arguments == (AUTOWIRED_ARGUMENT,)


def test_explicit_arguments_are_used_verbatim_and_never_cached(resolver):
    widget = resolver.instantiate(TargetDefinition("widget", Widget), explicit_args=[3])

    assert (widget.size, widget.label) == (3, "default")
    assert "widget" not in resolver.cache


def test_explicit_arguments_select_by_arity(resolver):
    widget = resolver.instantiate(TargetDefinition("widget", Widget), explicit_args=[3, "three"])

    assert widget.label == "three"


def test_chosen_constructors_restrict_the_candidates(pool, resolver):
    pool.register("label", "hello")
    sized = enumerate_constructors(Widget)[1]
    definition = TargetDefinition("widget", Widget, declared_arguments=DeclaredArguments({0: 4}))

    widget = resolver.autowire_constructor(definition, chosen_constructors=[sized])

    assert widget.label == "default"


def test_sole_constructor_receives_an_empty_collection(resolver):
    host = resolver.instantiate(TargetDefinition("host", PluginHost, autowire=True))

    assert host.plugins == []


def test_registered_collection_of_another_element_type_is_not_injected(pool, resolver):
    pool.register("names", ["a", "b"])

    host = resolver.instantiate(TargetDefinition("host", PluginHost, autowire=True))

    assert host.plugins == []


def test_collection_parameter_collects_every_matching_value(pool, registry, resolver):
    first, second = Plugin(), Plugin()
    pool.register("first", first)
    pool.register("second", second)

    host = resolver.instantiate(TargetDefinition("host", PluginHost, autowire=True))

    assert host.plugins == [first, second]
    assert registry.dependents_of("second") == {"host"}


def test_no_empty_collection_when_several_constructors_compete(resolver):
    with pytest.raises(NoMatchError, match="Error resolving 'rack'") as excinfo:
        resolver.instantiate(TargetDefinition("rack", PluginRack, autowire=True))

    assert len(excinfo.value.causes) == 2
    assert excinfo.value.__cause__ is excinfo.value.causes[-1]


def test_cached_recipe_keeps_the_default_chosen_on_the_first_build(resolver):
    definition = TargetDefinition("shelf", Shelf, autowire=True)

    cold = resolver.instantiate(definition)
    warm = resolver.instantiate(definition)

    assert resolver.cache.load("shelf").recipe_required
    assert cold.plugins is None
    assert warm.plugins is None


def test_failing_constructor_is_wrapped(resolver):
    definition = TargetDefinition("exploding", Exploding, declared_arguments=DeclaredArguments({0: 1}))

    with pytest.raises(InstantiationFailure, match="Error instantiating 'exploding'") as excinfo:
        resolver.instantiate(definition)

    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_injection_point_parameter_outside_an_injection_fails(resolver):
    with pytest.raises(IllegalStateError, match="No current InjectionPoint"):
        resolver.instantiate(TargetDefinition("logger", NamedLogger, autowire=True))


def test_nested_resolution_receives_the_enclosing_injection_point(logger_provider):
    resolver = logger_provider.resolver
    definition = TargetDefinition("service", Service, autowire=True)

    first = resolver.instantiate(definition)
    second = resolver.instantiate(definition)

    for service in (first, second):
        assert service.logger.point.executable.declaring_type is Service
        assert service.logger.point.index == 0
    assert resolver.injection_points.current() is None


def test_injection_point_is_restored_when_the_provider_fails(logger_provider):
    resolver = logger_provider.resolver

    with pytest.raises(NoMatchError):
        resolver.instantiate(TargetDefinition("clocked", Clocked, autowire=True))

    assert logger_provider.seen[0].executable.declaring_type is Clocked
    assert resolver.injection_points.current() is None


def test_greedier_constructor_receives_fresh_injected_values_on_reuse(pool, resolver):
    labels = iter(["first", "second"])
    pool.register_supplier("label", lambda: next(labels), [str])
    definition = TargetDefinition(
        "widget", Widget, declared_arguments=DeclaredArguments({0: 5}), autowire=True
    )

    first = resolver.instantiate(definition)
    second = resolver.instantiate(definition)

    assert (first.size, first.label) == (5, "first")
    assert (second.size, second.label) == (5, "second")
    assert resolver.cache.load("widget").prepared_arguments == (5, AUTOWIRED_ARGUMENT)

import threading

import pytest

from autowire.cache import ResolutionCache, ResolutionCacheEntry
from autowire.introspection import enumerate_constructors
from autowire.matcher import AUTOWIRED_ARGUMENT, ArgumentSlots
from model import Widget


@pytest.fixture
def cache():
    return ResolutionCache()


@pytest.fixture
def widget_init():
    return enumerate_constructors(Widget)[0]


def test_entry_holds_exactly_one_form_of_arguments(widget_init):
    with pytest.raises(ValueError, match="Exactly one"):
        ResolutionCacheEntry(widget_init)
    with pytest.raises(ValueError, match="Exactly one"):
        ResolutionCacheEntry(widget_init, (1,), (1,))


def test_final_arguments_are_stored_when_no_recipe_is_needed(cache, widget_init):
    entry = cache.store("widget", widget_init, ArgumentSlots([1, "a"], [1, "a"], [1, "a"]))

    assert entry.resolved_arguments == (1, "a")
    assert not entry.recipe_required
    assert cache.load("widget") is entry


def test_recipe_is_stored_when_required(cache, widget_init):
    slots = ArgumentSlots(["1", "a"], [1, "a"], ["1", AUTOWIRED_ARGUMENT], recipe_required=True)

    entry = cache.store("widget", widget_init, slots)

    assert entry.prepared_arguments == ("1", AUTOWIRED_ARGUMENT)
    assert entry.recipe_required
    assert not entry.fallback


def test_recipe_remembers_the_empty_collection_fallback(cache, widget_init):
    slots = ArgumentSlots([None, "a"], [[], "a"], [AUTOWIRED_ARGUMENT, "a"], recipe_required=True)

    assert cache.store("widget", widget_init, slots, fallback=True).fallback


def test_later_store_replaces_the_entry(cache, widget_init):
    cache.store_resolved("widget", widget_init, [1, "a"])
    cache.store_resolved("widget", widget_init, [2, "b"])

    assert cache.load("widget").resolved_arguments == (2, "b")
    assert len(cache) == 1


def test_invalidate_forgets_the_target(cache, widget_init):
    cache.store_resolved("widget", widget_init, [1, "a"])

    cache.invalidate("widget")
    cache.invalidate("unknown")

    assert "widget" not in cache
    assert cache.load("widget") is None
    assert len(cache) == 0


def test_concurrent_stores_leave_one_consistent_entry(cache, widget_init):
    def store(number):
        cache.store_resolved("widget", widget_init, [number, str(number)])

    threads = [threading.Thread(target=store, args=(n,)) for n in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    number, label = cache.load("widget").resolved_arguments
    assert label == str(number)
    assert len(cache) == 1

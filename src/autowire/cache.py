"""Remembers how each target was resolved.

A target's entry either holds the final arguments, reused as they are, or a
recipe describing how to derive them again, which is needed whenever an
argument came from a live lookup rather than a literal.

Each target has its own cell and lock. Loading and storing one target never
waits on another target, and the lock is held only while reading or
replacing the entry, never while matching candidates.
"""

import threading
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from loguru import logger

from autowire.domain import Executable
from autowire.matcher import ArgumentSlots

__all__ = ["ResolutionCacheEntry", "ResolutionCache"]


@dataclass(frozen=True)
class ResolutionCacheEntry:
    """The chosen executable and either its arguments or their recipe.

    ``fallback`` records whether empty collections stood in for missing
    injected values when the recipe was first matched.
    """

    executable: Executable
    resolved_arguments: Optional[tuple[Any, ...]] = None
    prepared_arguments: Optional[tuple[Any, ...]] = None
    fallback: bool = False

    def __post_init__(self):
        if (self.resolved_arguments is None) == (self.prepared_arguments is None):
            raise ValueError("Exactly one of resolved_arguments and prepared_arguments must be set")

    @property
    def recipe_required(self) -> bool:
        return self.prepared_arguments is not None


class _CacheCell:
    __slots__ = ("lock", "entry")

    def __init__(self):
        self.lock = threading.Lock()
        self.entry: Optional[ResolutionCacheEntry] = None


class ResolutionCache:
    """Resolution entries keyed by target name."""

    def __init__(self):
        self._cells: dict[str, _CacheCell] = {}
        self._cells_lock = threading.Lock()

    def store(
        self, target: str, executable: Executable, slots: ArgumentSlots, fallback: bool = False
    ) -> ResolutionCacheEntry:
        """Record a resolution, keeping the recipe if any slot requires one."""
        if slots.recipe_required:
            entry = ResolutionCacheEntry(
                executable, prepared_arguments=tuple(slots.prepared), fallback=fallback
            )
        else:
            entry = ResolutionCacheEntry(executable, resolved_arguments=tuple(slots.converted))
        self._put(target, entry)
        return entry

    def store_resolved(
        self, target: str, executable: Executable, args: Iterable[Any] = ()
    ) -> ResolutionCacheEntry:
        entry = ResolutionCacheEntry(executable, resolved_arguments=tuple(args))
        self._put(target, entry)
        return entry

    def load(self, target: str) -> Optional[ResolutionCacheEntry]:
        cell = self._cells.get(target)
        if cell is None:
            return None
        with cell.lock:
            return cell.entry

    def invalidate(self, target: str) -> None:
        """Forget a target's resolution, e.g. because its definition was replaced."""
        with self._cells_lock:
            self._cells.pop(target, None)

    def __contains__(self, target: str) -> bool:
        return self.load(target) is not None

    def __len__(self) -> int:
        return sum(1 for target in list(self._cells) if target in self)

    def _put(self, target: str, entry: ResolutionCacheEntry) -> None:
        cell = self._cells.get(target)
        if cell is None:
            with self._cells_lock:
                cell = self._cells.setdefault(target, _CacheCell())
        with cell.lock:
            cell.entry = entry
        logger.debug(
            f"Cached {'recipe' if entry.recipe_required else 'arguments'} "
            f"for '{target}' using {entry.executable}"
        )

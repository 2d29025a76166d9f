"""Scoring candidates and choosing the closest match."""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from loguru import logger

from autowire.domain import Executable
from autowire.errors import AmbiguousError, NoMatchError, UnsatisfiedError
from autowire.introspection import sort_executables
from autowire.matcher import ArgumentSlots
from autowire.type_matching import IMPOSSIBLE_WEIGHT

__all__ = ["Selection", "AmbiguityWitness", "CandidateSelector"]

MatchFunction = Callable[[Executable], Union[ArgumentSlots, UnsatisfiedError]]

_NO_MATCH_MESSAGE = (
    "Could not resolve a matching constructor or factory method "
    "(hint: specify index/type/name arguments for simple parameters to avoid type ambiguities)."
)


@dataclass(frozen=True)
class Selection:
    executable: Executable
    slots: ArgumentSlots
    weight: int


@dataclass
class AmbiguityWitness:
    """The best candidate so far and the candidates tied with it.

    Only candidates with the same number of parameters and a different
    parameter type signature count as tied: an identical signature is an
    override of the same method, which is not ambiguous.
    """

    min_weight: int = IMPOSSIBLE_WEIGHT
    best: Optional[Executable] = None
    best_slots: Optional[ArgumentSlots] = None
    ties: list[Executable] = field(default_factory=list)

    def offer(self, candidate: Executable, slots: ArgumentSlots, weight: int) -> None:
        if weight < self.min_weight:
            self.best = candidate
            self.best_slots = slots
            self.min_weight = weight
            self.ties = []
        elif (
            self.best is not None
            and weight == self.min_weight
            and candidate.parameter_count == self.best.parameter_count
            and candidate.parameter_types != self.best.parameter_types
        ):
            if not self.ties:
                self.ties.append(self.best)
            self.ties.append(candidate)


class CandidateSelector:
    """Runs the matcher over every candidate and picks the minimum weight."""

    def select(
        self,
        target_name: str,
        candidates: list[Executable],
        match: MatchFunction,
        lenient: bool,
        min_arg_count: int = 0,
        explicit_args: Optional[list[Any]] = None,
        greedy: bool = True,
        no_match_message: str = _NO_MATCH_MESSAGE,
    ) -> Selection:
        """Choose one candidate.

        Args:
            target_name: Name of the target, for diagnostics.
            candidates: Executables to consider; sorted here.
            match: Matches one candidate against the declared values.
            lenient: Score by type distance and tolerate ties, rather than by
                assignability with ties rejected.
            min_arg_count: Candidates with fewer parameters are skipped.
            explicit_args: Arguments supplied by the caller; candidates must
                take exactly this many.
            greedy: Stop once the chosen candidate has more arguments than the
                candidates left to consider.
            no_match_message: Explanation used when nothing matches.

        Raises:
            NoMatchError: If no candidate matches, carrying each rejection.
            AmbiguousError: If, in strict mode, candidates tie for the best weight.
        """
        witness = AmbiguityWitness()
        causes: list[UnsatisfiedError] = []

        for candidate in sort_executables(candidates):
            parameter_count = candidate.parameter_count
            if greedy and witness.best_slots is not None and witness.best_slots.size > parameter_count:
                break
            if parameter_count < min_arg_count:
                continue

            if explicit_args is not None:
                if parameter_count != len(explicit_args):
                    continue
                slots = ArgumentSlots.explicit(explicit_args)
            else:
                outcome = match(candidate)
                if isinstance(outcome, UnsatisfiedError):
                    logger.trace(f"Ignoring {candidate} of '{target_name}': {outcome}")
                    causes.append(outcome)
                    continue
                slots = outcome

            if lenient:
                weight = slots.type_difference_weight(candidate.parameter_types)
            else:
                weight = slots.assignability_weight(candidate.parameter_types)
            witness.offer(candidate, slots, weight)

        if witness.best is None:
            error = NoMatchError(target_name, no_match_message, causes)
            if causes:
                raise error from causes[-1]
            raise error
        if witness.ties and not lenient:
            raise AmbiguousError(target_name, witness.ties)

        return Selection(witness.best, witness.best_slots, witness.min_weight)

"""Unique employee-ID generation.

``resolve`` renders the format from the next free sequence and steps past IDs
that are already taken. ``generate_employee_id`` runs an ordered list of
strategies (sequence, then initials plus random digits, then a timestamp) and
returns the first one that succeeds.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Protocol, Union

from staffid.models.employee_id import ConflictReport, GenerationResult, IdContext
from staffid.services.id_format import render
from staffid.services.sequence import next_sequence

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 100
INITIALS_DRAWS = 10
FALLBACK_PREFIX = "EMP"


class ExhaustionError(Exception):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"unable to generate unique ID after {attempts} attempts")
        self.attempts = attempts


class GenerationError(Exception):
    pass


@dataclass(frozen=True)
class ResolvedId:
    id: str
    conflict: ConflictReport | None = None


def resolve(
    fmt: str,
    existing_ids: Collection[str],
    base_ctx: IdContext,
    *,
    start_sequence: int | None = None,
    max_attempts: int = MAX_ATTEMPTS,
    today: date | None = None,
) -> ResolvedId:
    today = today or date.today()
    sequence = start_sequence if start_sequence is not None else next_sequence(fmt, existing_ids, today)

    first_candidate: str | None = None
    for attempt in range(1, max_attempts + 1):
        candidate = render(fmt, base_ctx.model_copy(update={"sequence": sequence}), today)
        if first_candidate is None:
            first_candidate = candidate

        if candidate not in existing_ids:
            if attempt == 1:
                return ResolvedId(id=candidate)
            logger.info("ID %s taken, resolved to %s after %d attempts", first_candidate, candidate, attempt)
            return ResolvedId(
                id=candidate,
                conflict=ConflictReport(original_id=first_candidate, resolved_id=candidate),
            )
        sequence += 1

    raise ExhaustionError(max_attempts)


@dataclass(frozen=True)
class StrategyFailure:
    strategy: str
    reason: str


StrategyOutcome = Union[GenerationResult, StrategyFailure]


class GenerationStrategy(Protocol):
    name: str

    def attempt(
        self,
        fmt: str,
        existing_ids: Collection[str],
        ctx: IdContext,
        name: str | None,
    ) -> StrategyOutcome: ...


class SequenceStrategy:
    name = "sequence"

    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS,
        start_sequence: int | None = None,
        today: date | None = None,
    ) -> None:
        self.max_attempts = max_attempts
        self.start_sequence = start_sequence
        self.today = today

    def attempt(
        self,
        fmt: str,
        existing_ids: Collection[str],
        ctx: IdContext,
        name: str | None,
    ) -> StrategyOutcome:
        try:
            resolved = resolve(
                fmt,
                existing_ids,
                ctx,
                start_sequence=self.start_sequence,
                max_attempts=self.max_attempts,
                today=self.today,
            )
        except ExhaustionError as e:
            return StrategyFailure(self.name, str(e))
        return GenerationResult(employee_id=resolved.id, strategy=self.name, conflict=resolved.conflict)


def name_initials(name: str | None) -> str:
    if not name:
        return FALLBACK_PREFIX
    initials = "".join(word[0] for word in name.split() if word[0].isascii() and word[0].isalnum())
    return initials.upper() or FALLBACK_PREFIX


class InitialsStrategy:
    name = "initials"

    def __init__(self, rng: random.Random | None = None, draws: int = INITIALS_DRAWS) -> None:
        self.rng = rng or random.Random()
        self.draws = draws

    def attempt(
        self,
        fmt: str,
        existing_ids: Collection[str],
        ctx: IdContext,
        name: str | None,
    ) -> StrategyOutcome:
        initials = name_initials(name)
        for _ in range(self.draws):
            candidate = f"{initials}{self.rng.randint(1000, 9999)}"
            if candidate not in existing_ids:
                return GenerationResult(employee_id=candidate, strategy=self.name)
        return StrategyFailure(self.name, f"no free {initials}#### ID after {self.draws} draws")


class TimestampStrategy:
    name = "timestamp"

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self.clock = clock

    def attempt(
        self,
        fmt: str,
        existing_ids: Collection[str],
        ctx: IdContext,
        name: str | None,
    ) -> StrategyOutcome:
        base = f"{FALLBACK_PREFIX}{int(self.clock() * 1000)}"
        candidate = base
        suffix = 0
        while candidate in existing_ids:
            suffix += 1
            candidate = f"{base}-{suffix}"
        return GenerationResult(employee_id=candidate, strategy=self.name)


def default_strategies(max_attempts: int = MAX_ATTEMPTS) -> list[GenerationStrategy]:
    return [SequenceStrategy(max_attempts=max_attempts), InitialsStrategy(), TimestampStrategy()]


def generate_employee_id(
    fmt: str,
    existing_ids: Collection[str],
    ctx: IdContext,
    *,
    name: str | None = None,
    strategies: Sequence[GenerationStrategy] | None = None,
) -> GenerationResult:
    failures: list[StrategyFailure] = []
    for strategy in strategies if strategies is not None else default_strategies():
        outcome = strategy.attempt(fmt, existing_ids, ctx, name)
        if isinstance(outcome, GenerationResult):
            if failures:
                logger.warning(
                    "Employee ID from fallback strategy %s after: %s",
                    outcome.strategy,
                    "; ".join(f"{f.strategy}: {f.reason}" for f in failures),
                )
            return outcome
        failures.append(outcome)

    raise GenerationError("; ".join(f"{f.strategy}: {f.reason}" for f in failures) or "no strategies configured")

"""
Optimistic view state for one toggle (a like, a follow).

The view flips immediately with ``begin``; the server answer is folded in
with ``reduce``:

    begin(value, optimistic)   → pending   (shows optimistic, remembers value)
    reduce(pending, Confirmed) → confirmed (shows what the server says)
    reduce(pending, Reverted)  → reverted  (shows the remembered value again)

Outcomes arriving for a state that is no longer pending are ignored.
"""
from dataclasses import dataclass

PENDING   = "pending"
CONFIRMED = "confirmed"
REVERTED  = "reverted"


@dataclass(frozen=True)
class Optimistic:
    status:   str
    value:    object
    previous: object = None
    error:    str = None


@dataclass(frozen=True)
class Confirmed:
    value: object


@dataclass(frozen=True)
class Reverted:
    error: str


def settled(value) -> Optimistic:
    return Optimistic(status=CONFIRMED, value=value)


def begin(value, optimistic) -> Optimistic:
    return Optimistic(status=PENDING, value=optimistic, previous=value)


def reduce(state: Optimistic, outcome) -> Optimistic:
    if state.status != PENDING:
        return state
    if isinstance(outcome, Confirmed):
        return Optimistic(status=CONFIRMED, value=outcome.value)
    if isinstance(outcome, Reverted):
        return Optimistic(status=REVERTED, value=state.previous, error=outcome.error)
    raise TypeError(f"Unknown outcome {outcome!r}")

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Generic, TypeVar

from .exceptions import InvalidTransition


S = TypeVar("S")


class TransitionTable(Generic[S]):
    """Declarative state machine: each state maps to the states it may move to.

    A state with no outgoing edges is terminal.

        table = TransitionTable({"draft": ["sent"], "sent": []})
        table.can_transition("draft", "sent")  # True
        table.check("sent", "draft")           # raises InvalidTransition
    """

    def __init__(self, edges: Mapping[S, Iterable[S]], *, label: str = "status"):
        self.label = label
        self._edges: dict[S, frozenset[S]] = {state: frozenset(targets) for state, targets in edges.items()}
        unknown = {t for targets in self._edges.values() for t in targets} - set(self._edges)
        if unknown:
            raise ValueError(f"Transition targets missing from table: {sorted(map(str, unknown))}")

    @property
    def states(self) -> frozenset[S]:
        return frozenset(self._edges)

    def allowed_transitions(self, state: S) -> frozenset[S]:
        try:
            return self._edges[state]
        except KeyError:
            raise ValueError(f"Unknown {self.label}: {state!r}") from None

    def can_transition(self, source: S, target: S) -> bool:
        return target in self.allowed_transitions(source)

    def is_terminal(self, state: S) -> bool:
        return not self.allowed_transitions(state)

    def check(self, source: S, target: S) -> None:
        if not self.can_transition(source, target):
            raise InvalidTransition(source, target, label=self.label)

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Iterator, Mapping

from vitlint.estree.nodes import Node, iter_child_nodes
from vitlint.invariants import never

Listener = Callable[[Node], None]

_EXIT_SUFFIX = ":exit"
_WILDCARD = "*"


class Phase(str, Enum):
    ENTER = "enter"
    EXIT = "exit"


@dataclass(frozen=True)
class TraversalEvent:
    node: Node
    phase: Phase


def iter_traversal_events(root: Node) -> Iterator[TraversalEvent]:
    """Walk depth-first, yielding an enter event before a node's children and
    the matching exit event after them."""
    stack: list[tuple[Node, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            yield TraversalEvent(node=node, phase=Phase.EXIT)
            continue
        yield TraversalEvent(node=node, phase=Phase.ENTER)
        stack.append((node, True))
        children = list(iter_child_nodes(node))
        for child in reversed(children):
            stack.append((child, False))


@dataclass(frozen=True)
class Selector:
    node_types: frozenset[str]
    phase: Phase

    def matches(self, event: TraversalEvent) -> bool:
        if event.phase is not self.phase:
            return False
        return _WILDCARD in self.node_types or event.node.type in self.node_types


def parse_selector(raw: str) -> Selector:
    text = raw.strip()
    phase = Phase.ENTER
    if text.endswith(_EXIT_SUFFIX):
        phase = Phase.EXIT
        text = text[: -len(_EXIT_SUFFIX)]
    names = [part.strip() for part in text.split(",")]
    for name in names:
        if name == _WILDCARD:
            continue
        if not name or not name.isidentifier():
            never("unsupported listener selector", selector=raw)
    return Selector(node_types=frozenset(names), phase=phase)


@dataclass
class SelectorDispatcher:
    _entries: list[tuple[Selector, Listener]] = field(default_factory=list)

    def register(self, listeners: Mapping[str, Listener]) -> None:
        for raw, listener in listeners.items():
            self._entries.append((parse_selector(raw), listener))

    def dispatch(self, event: TraversalEvent) -> None:
        for selector, listener in self._entries:
            if selector.matches(event):
                listener(event.node)

    def run(self, events: Iterable[TraversalEvent]) -> None:
        for event in events:
            self.dispatch(event)

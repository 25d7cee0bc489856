from vitlint.estree.ingest import (
    ParseFailureWitness,
    iter_estree_paths,
    load_estree_file,
    load_estree_text,
)
from vitlint.estree.nodes import Node, SourceLocation, build_tree, iter_child_nodes
from vitlint.estree.scope import Binding, BindingKind, ScopeIndex
from vitlint.estree.traversal import (
    Phase,
    SelectorDispatcher,
    TraversalEvent,
    iter_traversal_events,
)

__all__ = [
    "Binding",
    "BindingKind",
    "Node",
    "ParseFailureWitness",
    "Phase",
    "ScopeIndex",
    "SelectorDispatcher",
    "SourceLocation",
    "TraversalEvent",
    "build_tree",
    "iter_child_nodes",
    "iter_estree_paths",
    "iter_traversal_events",
    "load_estree_file",
    "load_estree_text",
]

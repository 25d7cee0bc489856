from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Mapping

from vitlint.exceptions import EstreeLoadError

# Keys that describe a node rather than hold its children.
_METADATA_KEYS = frozenset({"type", "loc", "range", "start", "end", "parent", "comments", "tokens"})

# Child order for the node types test files use. Anything else falls back to
# the order of its JSON fields.
VISITOR_KEYS: dict[str, tuple[str, ...]] = {
    "Program": ("body",),
    "ExpressionStatement": ("expression",),
    "BlockStatement": ("body",),
    "StaticBlock": ("body",),
    "EmptyStatement": (),
    "DebuggerStatement": (),
    "ReturnStatement": ("argument",),
    "ThrowStatement": ("argument",),
    "IfStatement": ("test", "consequent", "alternate"),
    "SwitchStatement": ("discriminant", "cases"),
    "SwitchCase": ("test", "consequent"),
    "WhileStatement": ("test", "body"),
    "DoWhileStatement": ("body", "test"),
    "ForStatement": ("init", "test", "update", "body"),
    "ForInStatement": ("left", "right", "body"),
    "ForOfStatement": ("left", "right", "body"),
    "LabeledStatement": ("label", "body"),
    "BreakStatement": ("label",),
    "ContinueStatement": ("label",),
    "TryStatement": ("block", "handler", "finalizer"),
    "CatchClause": ("param", "body"),
    "VariableDeclaration": ("declarations",),
    "VariableDeclarator": ("id", "init"),
    "FunctionDeclaration": ("id", "params", "body"),
    "FunctionExpression": ("id", "params", "body"),
    "ArrowFunctionExpression": ("params", "body"),
    "ClassDeclaration": ("id", "superClass", "body"),
    "ClassExpression": ("id", "superClass", "body"),
    "ClassBody": ("body",),
    "MethodDefinition": ("key", "value"),
    "PropertyDefinition": ("key", "value"),
    "ImportDeclaration": ("specifiers", "source"),
    "ImportSpecifier": ("imported", "local"),
    "ImportDefaultSpecifier": ("local",),
    "ImportNamespaceSpecifier": ("local",),
    "ImportExpression": ("source",),
    "ExportNamedDeclaration": ("declaration", "specifiers", "source"),
    "ExportDefaultDeclaration": ("declaration",),
    "ExportAllDeclaration": ("exported", "source"),
    "ExportSpecifier": ("exported", "local"),
    "Identifier": (),
    "PrivateIdentifier": (),
    "Literal": (),
    "Super": (),
    "ThisExpression": (),
    "MetaProperty": ("meta", "property"),
    "TemplateLiteral": ("quasis", "expressions"),
    "TemplateElement": (),
    "TaggedTemplateExpression": ("tag", "quasi"),
    "ArrayExpression": ("elements",),
    "ObjectExpression": ("properties",),
    "Property": ("key", "value"),
    "SpreadElement": ("argument",),
    "UnaryExpression": ("argument",),
    "UpdateExpression": ("argument",),
    "BinaryExpression": ("left", "right"),
    "LogicalExpression": ("left", "right"),
    "AssignmentExpression": ("left", "right"),
    "ConditionalExpression": ("test", "consequent", "alternate"),
    "SequenceExpression": ("expressions",),
    "AwaitExpression": ("argument",),
    "YieldExpression": ("argument",),
    "CallExpression": ("callee", "arguments"),
    "NewExpression": ("callee", "arguments"),
    "MemberExpression": ("object", "property"),
    "ChainExpression": ("expression",),
    "ObjectPattern": ("properties",),
    "ArrayPattern": ("elements",),
    "RestElement": ("argument",),
    "AssignmentPattern": ("left", "right"),
}

FUNCTION_LITERAL_TYPES = frozenset({"FunctionExpression", "ArrowFunctionExpression"})
FUNCTION_TYPES = FUNCTION_LITERAL_TYPES | {"FunctionDeclaration"}


@dataclass(frozen=True)
class SourceLocation:
    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass(eq=False)
class Node:
    """One ESTree node.

    Nodes compare and hash by identity, so they can key per-traversal tables.
    Unknown attributes fall through to the node's ESTree fields.
    """

    type: str
    fields: dict[str, object] = field(default_factory=dict, repr=False)
    parent: Node | None = field(default=None, repr=False)
    loc: SourceLocation | None = field(default=None, repr=False)
    range: tuple[int, int] | None = field(default=None, repr=False)

    def __getattr__(self, name: str) -> object:
        fields = self.__dict__.get("fields")
        if fields is not None and name in fields:
            return fields[name]
        raise AttributeError(f"{self.__dict__.get('type', 'Node')} has no field {name!r}")

    def get(self, name: str, default: object = None) -> object:
        return self.fields.get(name, default)

    def child(self, name: str) -> Node | None:
        value = self.fields.get(name)
        return value if isinstance(value, Node) else None

    def children(self, name: str) -> list[Node]:
        value = self.fields.get(name)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, Node)]


def is_node(value: object, *types: str) -> bool:
    if not isinstance(value, Node):
        return False
    return not types or value.type in types


def _location(raw: object) -> SourceLocation | None:
    if not isinstance(raw, Mapping):
        return None
    start = raw.get("start")
    end = raw.get("end")
    if not isinstance(start, Mapping) or not isinstance(end, Mapping):
        return None
    try:
        return SourceLocation(
            start_line=int(start.get("line", 0)),
            start_column=int(start.get("column", 0)),
            end_line=int(end.get("line", 0)),
            end_column=int(end.get("column", 0)),
        )
    except (TypeError, ValueError):
        return None


def _range(raw: Mapping[str, object]) -> tuple[int, int] | None:
    value = raw.get("range")
    if isinstance(value, list) and len(value) == 2 and all(isinstance(item, int) for item in value):
        return (value[0], value[1])
    start = raw.get("start")
    end = raw.get("end")
    if isinstance(start, int) and isinstance(end, int):
        return (start, end)
    return None


_Pending = list[tuple[Mapping[str, object], Node]]


def _new_node(raw: Mapping[str, object], parent: Node | None) -> Node:
    return Node(
        type=str(raw["type"]),
        parent=parent,
        loc=_location(raw.get("loc")),
        range=_range(raw),
    )


def _convert(value: object, parent: Node, pending: _Pending) -> object:
    # Child nodes are created empty; their fields are filled when popped.
    if isinstance(value, Mapping) and isinstance(value.get("type"), str):
        node = _new_node(value, parent)
        pending.append((value, node))
        return node
    if isinstance(value, list):
        return [_convert(item, parent, pending) for item in value]
    return value


def build_tree(payload: object) -> Node:
    """Convert a decoded ESTree document into linked Node objects.

    Works from an explicit stack, so nesting depth is bounded by memory
    rather than the interpreter's recursion limit.
    """
    if not isinstance(payload, Mapping) or not isinstance(payload.get("type"), str):
        raise EstreeLoadError("ESTree document root must be an object with a string 'type'")
    root = _new_node(payload, None)
    pending: _Pending = [(payload, root)]
    while pending:
        raw, node = pending.pop()
        for key, value in raw.items():
            if key in _METADATA_KEYS:
                continue
            node.fields[key] = _convert(value, node, pending)
    return root


def _child_keys(node: Node) -> tuple[str, ...]:
    keys = VISITOR_KEYS.get(node.type)
    if keys is not None:
        return keys
    return tuple(node.fields)


def iter_child_nodes(node: Node) -> Iterator[Node]:
    for key in _child_keys(node):
        value = node.fields.get(key)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item


def iter_ancestors(node: Node) -> Iterator[Node]:
    current = node.parent
    while current is not None:
        yield current
        current = current.parent

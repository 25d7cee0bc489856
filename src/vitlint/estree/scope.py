"""Lexical binding resolution for ESTree programs.

The index answers one question: which declaration does an identifier refer
to? It is deliberately smaller than a full scope manager. Temporal dead zones
and `with`/`eval` are ignored; `var` declarations hoist to the nearest
function or program; `let`, `const`, classes and function declarations bind
in their block.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from vitlint.estree.nodes import FUNCTION_TYPES, Node, is_node, iter_ancestors, iter_child_nodes

_BLOCK_SCOPE_TYPES = frozenset({"BlockStatement", "StaticBlock", "SwitchStatement"})
_LOOP_SCOPE_TYPES = frozenset({"ForStatement", "ForInStatement", "ForOfStatement"})
_SCOPE_TYPES = (
    frozenset({"Program", "CatchClause", "ClassExpression"})
    | FUNCTION_TYPES
    | _BLOCK_SCOPE_TYPES
    | _LOOP_SCOPE_TYPES
)


class BindingKind(str, Enum):
    IMPORT = "import"
    VARIABLE = "variable"
    PARAMETER = "parameter"
    FUNCTION = "function"
    CLASS = "class"
    CATCH = "catch"


@dataclass(frozen=True)
class Binding:
    name: str
    kind: BindingKind
    identifier: Node
    declaration: Node
    scope: Node
    source: str | None = None
    imported: str | None = None
    destructured: bool = False


def _string_value(node: Node | None) -> str | None:
    if node is None:
        return None
    if node.type == "Identifier":
        return str(node.get("name", ""))
    if node.type == "Literal" and isinstance(node.get("value"), str):
        return str(node.get("value"))
    return None


def _require_source(init: Node | None) -> str | None:
    if not is_node(init, "CallExpression"):
        return None
    callee = init.child("callee")
    if not is_node(callee, "Identifier") or callee.get("name") != "require":
        return None
    args = init.children("arguments")
    if len(args) != 1:
        return None
    return _string_value(args[0]) if args[0].type == "Literal" else None


def _pattern_identifiers(
    pattern: Node | None,
    *,
    key: str | None = None,
    destructured: bool = False,
) -> Iterator[tuple[Node, str | None, bool]]:
    # (identifier, property key, came from destructuring)
    if pattern is None:
        return
    if pattern.type == "Identifier":
        yield pattern, key, destructured
    elif pattern.type == "ObjectPattern":
        for prop in pattern.children("properties"):
            if prop.type == "RestElement":
                yield from _pattern_identifiers(prop.child("argument"), destructured=True)
                continue
            prop_key = None if prop.get("computed") else _string_value(prop.child("key"))
            yield from _pattern_identifiers(prop.child("value"), key=prop_key, destructured=True)
    elif pattern.type == "ArrayPattern":
        for element in pattern.children("elements"):
            yield from _pattern_identifiers(element, destructured=True)
    elif pattern.type == "AssignmentPattern":
        yield from _pattern_identifiers(pattern.child("left"), key=key, destructured=destructured)
    elif pattern.type == "RestElement":
        yield from _pattern_identifiers(pattern.child("argument"), destructured=destructured)


class ScopeIndex:
    def __init__(self, root: Node) -> None:
        self.root = root
        self._tables: dict[Node, dict[str, Binding]] = {}

    def resolve(self, identifier: Node) -> Binding | None:
        name = identifier.get("name")
        if not isinstance(name, str):
            return None
        for scope in self._enclosing_scopes(identifier):
            binding = self.bindings(scope).get(name)
            if binding is not None:
                return binding
        return None

    def bindings(self, scope: Node) -> dict[str, Binding]:
        table = self._tables.get(scope)
        if table is None:
            table = self._collect(scope)
            self._tables[scope] = table
        return table

    def _enclosing_scopes(self, identifier: Node) -> Iterator[Node]:
        child = identifier
        for ancestor in iter_ancestors(identifier):
            if ancestor.type in _SCOPE_TYPES:
                # A function declaration's name binds in the outer scope.
                if not (ancestor.type == "FunctionDeclaration" and ancestor.child("id") is child):
                    yield ancestor
            child = ancestor

    def _collect(self, scope: Node) -> dict[str, Binding]:
        table: dict[str, Binding] = {}
        if scope.type == "Program":
            self._collect_statements(scope, scope.children("body"), table, include_imports=True)
            self._collect_hoisted_vars(scope, scope.children("body"), table)
        elif scope.type in FUNCTION_TYPES:
            own_id = scope.child("id")
            if scope.type == "FunctionExpression" and own_id is not None:
                self._add(table, own_id, BindingKind.FUNCTION, scope, scope)
            for param in scope.children("params"):
                for ident, key, destructured in _pattern_identifiers(param):
                    self._add(
                        table,
                        ident,
                        BindingKind.PARAMETER,
                        param,
                        scope,
                        imported=key,
                        destructured=destructured,
                    )
            body = scope.child("body")
            if is_node(body, "BlockStatement"):
                self._collect_hoisted_vars(scope, body.children("body"), table)
        elif scope.type == "ClassExpression":
            own_id = scope.child("id")
            if own_id is not None:
                self._add(table, own_id, BindingKind.CLASS, scope, scope)
        elif scope.type == "CatchClause":
            for ident, _key, _destructured in _pattern_identifiers(scope.child("param")):
                self._add(table, ident, BindingKind.CATCH, scope, scope)
        elif scope.type in _LOOP_SCOPE_TYPES:
            head = scope.child("init") if scope.type == "ForStatement" else scope.child("left")
            if is_node(head, "VariableDeclaration") and head.get("kind") != "var":
                self._collect_declaration(head, scope, table)
        elif scope.type == "SwitchStatement":
            statements: list[Node] = []
            for case in scope.children("cases"):
                statements.extend(case.children("consequent"))
            self._collect_statements(scope, statements, table)
        else:
            self._collect_statements(scope, scope.children("body"), table)
        return table

    def _collect_statements(
        self,
        scope: Node,
        statements: list[Node],
        table: dict[str, Binding],
        *,
        include_imports: bool = False,
    ) -> None:
        for statement in statements:
            if statement.type in ("ExportNamedDeclaration", "ExportDefaultDeclaration"):
                declaration = statement.child("declaration")
                if declaration is None:
                    continue
                statement = declaration
            if statement.type == "ImportDeclaration" and include_imports:
                self._collect_import(statement, scope, table)
            elif statement.type == "VariableDeclaration" and statement.get("kind") != "var":
                self._collect_declaration(statement, scope, table)
            elif statement.type == "FunctionDeclaration" and statement.child("id") is not None:
                self._add(table, statement.child("id"), BindingKind.FUNCTION, statement, scope)
            elif statement.type == "ClassDeclaration" and statement.child("id") is not None:
                self._add(table, statement.child("id"), BindingKind.CLASS, statement, scope)

    def _collect_hoisted_vars(self, scope: Node, statements: list[Node], table: dict[str, Binding]) -> None:
        pending = list(statements)
        while pending:
            node = pending.pop()
            if node.type in FUNCTION_TYPES or node.type in ("ClassDeclaration", "ClassExpression"):
                continue
            if node.type == "VariableDeclaration" and node.get("kind") == "var":
                self._collect_declaration(node, scope, table)
            pending.extend(iter_child_nodes(node))

    def _collect_declaration(self, declaration: Node, scope: Node, table: dict[str, Binding]) -> None:
        for declarator in declaration.children("declarations"):
            source = _require_source(declarator.child("init"))
            for ident, key, destructured in _pattern_identifiers(declarator.child("id")):
                self._add(
                    table,
                    ident,
                    BindingKind.VARIABLE,
                    declarator,
                    scope,
                    source=source if destructured else None,
                    imported=key,
                    destructured=destructured,
                )

    def _collect_import(self, statement: Node, scope: Node, table: dict[str, Binding]) -> None:
        source = _string_value(statement.child("source"))
        for specifier in statement.children("specifiers"):
            local = specifier.child("local")
            if local is None:
                continue
            if specifier.type == "ImportSpecifier":
                imported = _string_value(specifier.child("imported"))
            elif specifier.type == "ImportDefaultSpecifier":
                imported = "default"
            else:
                imported = "*"
            self._add(table, local, BindingKind.IMPORT, statement, scope, source=source, imported=imported)

    @staticmethod
    def _add(
        table: dict[str, Binding],
        identifier: Node,
        kind: BindingKind,
        declaration: Node,
        scope: Node,
        *,
        source: str | None = None,
        imported: str | None = None,
        destructured: bool = False,
    ) -> None:
        name = identifier.get("name")
        if not isinstance(name, str):
            return
        table[name] = Binding(
            name=name,
            kind=kind,
            identifier=identifier,
            declaration=declaration,
            scope=scope,
            source=source,
            imported=imported,
            destructured=destructured,
        )

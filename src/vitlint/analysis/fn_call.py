"""Recognise calls that belong to the Vitest testing API.

A call is parsed by flattening its callee into a chain of accessors
(``test.concurrent.each`` -> ``test``, ``concurrent``, ``each``), resolving
the chain head to a framework binding, and then validating the remaining
links for that head. ``expect`` chains are split into modifiers and a
matcher instead of being validated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from vitlint.estree.nodes import FUNCTION_LITERAL_TYPES, Node, is_node
from vitlint.estree.scope import Binding, BindingKind, ScopeIndex
from vitlint.schema import VitestSettings


class FnCallKind(str, Enum):
    DESCRIBE = "describe"
    TEST = "test"
    HOOK = "hook"
    EXPECT = "expect"
    EXPECT_TYPE_OF = "expectTypeOf"
    VI = "vi"
    UNKNOWN = "unknown"


class HeadKind(str, Enum):
    IMPORT = "import"
    GLOBAL = "global"
    TEST_CONTEXT = "testContext"
    EXTENDED = "extended"


class ExpectParseFailure(str, Enum):
    MATCHER_NOT_FOUND = "matcher-not-found"
    MATCHER_NOT_CALLED = "matcher-not-called"
    MODIFIER_UNKNOWN = "modifier-unknown"


DESCRIBE_NAMES = frozenset({"describe", "fdescribe", "xdescribe", "suite"})
TEST_NAMES = frozenset({"it", "test", "fit", "xit", "xtest", "bench"})
HOOK_NAMES = frozenset({"beforeAll", "beforeEach", "afterAll", "afterEach"})
EXPECT_TYPE_OF_NAMES = frozenset({"expectTypeOf", "assertType"})

# Members whose result is called with the test arguments: test.each(table)(name, fn).
CALL_PRODUCING_MEMBERS = frozenset({"each", "for", "runIf", "skipIf"})

_TEST_MEMBERS = frozenset({"only", "skip", "todo", "concurrent", "sequential", "fails"}) | CALL_PRODUCING_MEMBERS
_DESCRIBE_MEMBERS = frozenset({"only", "skip", "todo", "concurrent", "sequential", "shuffle"}) | CALL_PRODUCING_MEMBERS
_CHAIN_MEMBERS: dict[str, frozenset[str]] = {
    "it": _TEST_MEMBERS,
    "test": _TEST_MEMBERS,
    "bench": frozenset({"only", "skip", "todo", "runIf", "skipIf"}),
    "fit": frozenset({"each"}),
    "xit": frozenset({"each"}),
    "xtest": frozenset({"each"}),
    "describe": _DESCRIBE_MEMBERS,
    "suite": _DESCRIBE_MEMBERS,
    "fdescribe": frozenset({"each"}),
    "xdescribe": frozenset({"each"}),
    **{name: frozenset() for name in HOOK_NAMES},
}

_EXPECT_MODIFIERS = frozenset({"not", "resolves", "rejects"})
_PROMISE_MODIFIERS = frozenset({"resolves", "rejects"})


def determine_fn_type(name: str) -> FnCallKind:
    if name == "expect":
        return FnCallKind.EXPECT
    if name in EXPECT_TYPE_OF_NAMES:
        return FnCallKind.EXPECT_TYPE_OF
    if name == "vi":
        return FnCallKind.VI
    if name in DESCRIBE_NAMES:
        return FnCallKind.DESCRIBE
    if name in TEST_NAMES:
        return FnCallKind.TEST
    if name in HOOK_NAMES:
        return FnCallKind.HOOK
    return FnCallKind.UNKNOWN


def is_valid_chain(name: str, members: list[str | None]) -> bool:
    allowed = _CHAIN_MEMBERS.get(name)
    if allowed is None:
        return False
    seen: set[str] = set()
    for index, member in enumerate(members):
        if member is None or member not in allowed or member in seen:
            return False
        if member in CALL_PRODUCING_MEMBERS and index != len(members) - 1:
            return False
        seen.add(member)
    return True


def accessor_value(node: Node | None) -> str | None:
    if node is None:
        return None
    if node.type == "Identifier":
        name = node.get("name")
        return name if isinstance(name, str) else None
    if node.type == "Literal":
        value = node.get("value")
        return value if isinstance(value, str) else None
    if node.type == "TemplateLiteral" and not node.children("expressions"):
        quasis = node.children("quasis")
        if len(quasis) == 1:
            value = quasis[0].get("value")
            if isinstance(value, dict) and isinstance(value.get("cooked"), str):
                return value["cooked"]
    return None


def node_chain(node: Node | None) -> list[Node] | None:
    if node is None:
        return None
    if accessor_value(node) is not None:
        return [node]
    if node.type == "MemberExpression":
        prop = node.child("property")
        if node.get("computed") and is_node(prop, "Identifier"):
            return None
        head = node_chain(node.child("object"))
        tail = node_chain(prop)
        if head is None or tail is None:
            return None
        return head + tail
    if node.type == "CallExpression":
        return node_chain(node.child("callee"))
    if node.type == "TaggedTemplateExpression":
        return node_chain(node.child("tag"))
    if node.type == "ChainExpression":
        return node_chain(node.child("expression"))
    return None


def find_top_most_call_expression(node: Node) -> Node:
    """Climb callee/object links to the outermost call of a chain."""
    top = node
    child = node
    parent = node.parent
    while parent is not None:
        if parent.type == "CallExpression" and parent.child("callee") is child:
            top = parent
        elif parent.type == "MemberExpression" and parent.child("object") is child:
            pass
        elif parent.type == "TaggedTemplateExpression" and parent.child("tag") is child:
            pass
        elif parent.type != "ChainExpression":
            break
        child = parent
        parent = parent.parent
    return top


def is_chain_top(node: Node) -> bool:
    return find_top_most_call_expression(node) is node


@dataclass(frozen=True)
class ResolvedFnHead:
    original: str | None
    local: str
    kind: HeadKind
    node: Node


@dataclass(frozen=True)
class ParsedFnCall:
    name: str
    kind: FnCallKind
    head: ResolvedFnHead
    members: tuple[Node, ...]
    node: Node

    @property
    def member_names(self) -> tuple[str | None, ...]:
        return tuple(accessor_value(member) for member in self.members)


@dataclass(frozen=True)
class ParsedExpectCall(ParsedFnCall):
    matcher: Node
    args: tuple[Node, ...]
    modifiers: tuple[Node, ...]


def _find_modifiers_and_matcher(
    members: tuple[Node, ...],
) -> tuple[Node, tuple[Node, ...], tuple[Node, ...]] | ExpectParseFailure:
    modifiers: list[Node] = []
    for member in members:
        # A called member is the matcher and ends the chain.
        access = member.parent
        if (
            is_node(access, "MemberExpression")
            and is_node(access.parent, "CallExpression")
            and access.parent.child("callee") is access
        ):
            return member, tuple(access.parent.children("arguments")), tuple(modifiers)
        name = accessor_value(member)
        if not modifiers:
            if name not in _EXPECT_MODIFIERS:
                return ExpectParseFailure.MODIFIER_UNKNOWN
        elif len(modifiers) == 1:
            if name != "not" or accessor_value(modifiers[0]) not in _PROMISE_MODIFIERS:
                return ExpectParseFailure.MODIFIER_UNKNOWN
        else:
            return ExpectParseFailure.MODIFIER_UNKNOWN
        modifiers.append(member)
    return ExpectParseFailure.MATCHER_NOT_FOUND


class FnCallParser:
    """Per-file classifier for framework calls; results are cached per node."""

    def __init__(self, scopes: ScopeIndex, settings: VitestSettings | None = None) -> None:
        self.scopes = scopes
        self.settings = settings or VitestSettings()
        self._alias_targets = {
            alias: name
            for name, aliases in self.settings.global_aliases.items()
            for alias in aliases
        }
        self._cache: dict[tuple[Node, bool], ParsedFnCall | ExpectParseFailure | None] = {}

    def parse_with_reason(
        self,
        node: Node,
        *,
        follow_local_bindings: bool = False,
    ) -> ParsedFnCall | ExpectParseFailure | None:
        if node.type != "CallExpression":
            return None
        key = (node, follow_local_bindings)
        if key not in self._cache:
            self._cache[key] = self._parse(node, follow_local_bindings)
        return self._cache[key]

    def parse(self, node: Node, *, follow_local_bindings: bool = False) -> ParsedFnCall | None:
        result = self.parse_with_reason(node, follow_local_bindings=follow_local_bindings)
        return result if isinstance(result, ParsedFnCall) else None

    def classify(self, node: Node) -> FnCallKind | None:
        parsed = self.parse(node)
        return parsed.kind if parsed is not None else None

    def is_type_of(self, node: Node, kinds: Iterable[FnCallKind]) -> bool:
        parsed = self.parse(node)
        return parsed is not None and parsed.kind in set(kinds)

    def is_known_call_of_kind(self, node: Node, kind: FnCallKind, candidate_names: Iterable[str]) -> bool:
        """Name-only check: the callee identifier is one of the candidates and
        the candidate is a root of the requested kind."""
        if not is_node(node, "CallExpression"):
            return False
        callee = node.child("callee")
        if not is_node(callee, "Identifier"):
            return False
        name = callee.get("name")
        return name in set(candidate_names) and determine_fn_type(str(name)) is kind

    def _parse(self, node: Node, follow_local_bindings: bool) -> ParsedFnCall | ExpectParseFailure | None:
        chain = node_chain(node)
        if not chain:
            return None
        first, rest = chain[0], tuple(chain[1:])
        last_link = accessor_value(chain[-1])
        callee = node.child("callee")
        if last_link in CALL_PRODUCING_MEMBERS and not is_node(
            callee, "CallExpression", "TaggedTemplateExpression"
        ):
            return None
        if is_node(callee, "TaggedTemplateExpression") and last_link != "each":
            return None

        head = self._resolve_head(first, follow_local_bindings=follow_local_bindings, seen=frozenset())
        if head is None:
            return None
        name = head.original or head.local
        kind = determine_fn_type(name)

        if kind in (FnCallKind.EXPECT, FnCallKind.EXPECT_TYPE_OF):
            return self._parse_expect(node, name, kind, head, rest)
        if kind is FnCallKind.VI:
            if not is_chain_top(node):
                return None
            return ParsedFnCall(name=name, kind=kind, head=head, members=rest, node=node)

        if not is_valid_chain(name, [accessor_value(member) for member in rest]):
            return None
        if any(not is_node(link.parent, "MemberExpression") for link in chain[:-1]):
            return None
        if not is_chain_top(node):
            return None
        return ParsedFnCall(name=name, kind=kind, head=head, members=rest, node=node)

    @staticmethod
    def _parse_expect(
        node: Node,
        name: str,
        kind: FnCallKind,
        head: ResolvedFnHead,
        members: tuple[Node, ...],
    ) -> ParsedExpectCall | ExpectParseFailure | None:
        # Only the outermost call of a chain is the assertion, so
        # expect(x).toBe(1).toBe(2) parses once.
        if not is_chain_top(node):
            return None
        found = _find_modifiers_and_matcher(members)
        if isinstance(found, ExpectParseFailure):
            if found is ExpectParseFailure.MATCHER_NOT_FOUND and is_node(node.parent, "MemberExpression"):
                return ExpectParseFailure.MATCHER_NOT_CALLED
            return found
        matcher, args, modifiers = found
        return ParsedExpectCall(
            name=name,
            kind=kind,
            head=head,
            members=members,
            node=node,
            matcher=matcher,
            args=args,
            modifiers=modifiers,
        )

    def _resolve_head(
        self,
        identifier: Node,
        *,
        follow_local_bindings: bool,
        seen: frozenset[Node],
    ) -> ResolvedFnHead | None:
        if identifier.type != "Identifier":
            return None
        local = str(identifier.get("name"))
        binding = self.scopes.resolve(identifier)
        if binding is None:
            return ResolvedFnHead(
                original=self._alias_targets.get(local),
                local=local,
                kind=HeadKind.GLOBAL,
                node=identifier,
            )
        if binding.source is not None:
            if binding.source not in self.settings.import_sources:
                return None
            if binding.imported in (None, "default", "*"):
                return None
            return ResolvedFnHead(original=binding.imported, local=local, kind=HeadKind.IMPORT, node=identifier)
        if binding.kind is BindingKind.PARAMETER and binding.destructured and binding.imported:
            if _is_callback(binding.scope):
                return ResolvedFnHead(
                    original=binding.imported,
                    local=local,
                    kind=HeadKind.TEST_CONTEXT,
                    node=identifier,
                )
            return None
        if follow_local_bindings and binding.kind is BindingKind.VARIABLE:
            return self._resolve_extended(binding, identifier, seen)
        return None

    def _resolve_extended(self, binding: Binding, identifier: Node, seen: frozenset[Node]) -> ResolvedFnHead | None:
        # const it = test.extend({...}); const myTest = base.extend(...)
        declarator = binding.declaration
        if binding.destructured or declarator in seen:
            return None
        init = declarator.child("init")
        if not is_node(init, "CallExpression"):
            return None
        callee = init.child("callee")
        if not is_node(callee, "MemberExpression") or accessor_value(callee.child("property")) != "extend":
            return None
        base_chain = node_chain(callee.child("object"))
        if not base_chain:
            return None
        base = self._resolve_head(base_chain[0], follow_local_bindings=True, seen=seen | {declarator})
        if base is None:
            return None
        base_name = base.original or base.local
        if determine_fn_type(base_name) is not FnCallKind.TEST:
            return None
        if not is_valid_chain(base_name, [accessor_value(member) for member in base_chain[1:]]):
            return None
        return ResolvedFnHead(original=base_name, local=binding.name, kind=HeadKind.EXTENDED, node=identifier)


def _is_callback(function: Node) -> bool:
    if function.type not in FUNCTION_LITERAL_TYPES:
        return False
    parent = function.parent
    return is_node(parent, "CallExpression") and any(arg is function for arg in parent.children("arguments"))

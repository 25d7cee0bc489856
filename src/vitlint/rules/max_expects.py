"""Limit the number of assertion calls inside a single test body.

Scopes are tracked with one active pointer rather than a stack: entering a
test body points at it, and leaving any test body clears the pointer even
when an enclosing test body is still open. Assertions that follow a nested
test body inside an outer one are therefore not counted.
"""

from __future__ import annotations

from dataclasses import dataclass

from vitlint.analysis.fn_call import FnCallKind, FnCallParser, ParsedExpectCall
from vitlint.analysis.rule import RuleContext, RuleDocs, RuleMeta, create_rule
from vitlint.estree.nodes import FUNCTION_LITERAL_TYPES, Node, is_node
from vitlint.schema import MaxExpectsOptions

RULE_NAME = "max-expects"
MESSAGE_ID = "maxExpect"

# Custom test contexts built with `base.extend(...)` often cannot be traced
# back to the framework; these callee names are accepted on sight.
FALLBACK_TEST_NAMES = ("it", "test")


def _enclosing_call(node: Node) -> Node | None:
    parent = node.parent
    return parent if is_node(parent, "CallExpression") else None


def _is_final_argument(node: Node, call: Node) -> bool:
    args = call.children("arguments")
    return bool(args) and args[-1] is node


def is_test_function(node: Node, fn_calls: FnCallParser) -> bool:
    """Decide whether a function literal is the body of a test case."""
    if node.type not in FUNCTION_LITERAL_TYPES:
        return False
    call = _enclosing_call(node)
    if call is None:
        return False
    if _is_final_argument(node, call):
        if fn_calls.is_type_of(call, [FnCallKind.TEST]):
            return True
        if is_node(call.child("callee"), "Identifier"):
            parsed = fn_calls.parse(call, follow_local_bindings=True)
            if parsed is not None and parsed.kind is FnCallKind.TEST:
                return True
    return fn_calls.is_known_call_of_kind(call, FnCallKind.TEST, FALLBACK_TEST_NAMES)


@dataclass(eq=False)
class TestScope:
    __test__ = False

    function: Node
    count: int = 0


class TestScopeTracker:
    __test__ = False

    def __init__(self, fn_calls: FnCallParser) -> None:
        self.fn_calls = fn_calls
        self.scopes: dict[Node, TestScope] = {}
        self.active: TestScope | None = None

    def enter_function(self, node: Node) -> None:
        if not is_test_function(node, self.fn_calls):
            return
        scope = TestScope(function=node)
        self.scopes[node] = scope
        self.active = scope

    def exit_function(self, node: Node) -> None:
        if self.scopes.pop(node, None) is not None:
            self.active = None


@dataclass(frozen=True)
class Violation:
    node: Node
    count: int
    max: int | float


class AssertionCounter:
    def __init__(self, tracker: TestScopeTracker, fn_calls: FnCallParser, maximum: int | float) -> None:
        self.tracker = tracker
        self.fn_calls = fn_calls
        self.maximum = maximum

    def is_countable(self, node: Node) -> bool:
        parsed = self.fn_calls.parse(node)
        if not isinstance(parsed, ParsedExpectCall) or parsed.kind is not FnCallKind.EXPECT:
            return False
        # expect.assertions(1), expect.soft(x).toBe(y)
        return not is_node(parsed.head.node.parent, "MemberExpression")

    def visit_call(self, node: Node) -> Violation | None:
        if not self.is_countable(node):
            return None
        scope = self.tracker.active
        if scope is None:
            return None
        scope.count += 1
        if scope.count > self.maximum:
            return Violation(node=node, count=scope.count, max=self.maximum)
        return None


def create(context: RuleContext[MaxExpectsOptions], options: MaxExpectsOptions):
    tracker = TestScopeTracker(context.fn_calls)
    counter = AssertionCounter(tracker, context.fn_calls, options.max)

    def on_call(node: Node) -> None:
        violation = counter.visit_call(node)
        if violation is not None:
            context.report(
                node=violation.node,
                message_id=MESSAGE_ID,
                data={"count": violation.count, "max": violation.max},
            )

    return {
        "FunctionExpression, ArrowFunctionExpression": tracker.enter_function,
        "FunctionExpression, ArrowFunctionExpression:exit": tracker.exit_function,
        "CallExpression": on_call,
    }


rule = create_rule(
    name=RULE_NAME,
    meta=RuleMeta(
        docs=RuleDocs(
            description="enforce a maximum number of expect per test",
            recommended=False,
            requires_type_checking=False,
        ),
        messages={
            MESSAGE_ID: "Too many assertion calls ({{ count }}) - maximum allowed is {{ max }}",
        },
        type="suggestion",
        options_model=MaxExpectsOptions,
    ),
    default_options=MaxExpectsOptions(max=5),
    create=create,
)

from __future__ import annotations

import pytest

from vitlint.analysis.fn_call import (
    ExpectParseFailure,
    FnCallKind,
    FnCallParser,
    HeadKind,
    ParsedExpectCall,
    accessor_value,
    determine_fn_type,
    find_top_most_call_expression,
    is_valid_chain,
)
from vitlint.estree.nodes import build_tree
from vitlint.estree.scope import ScopeIndex
from vitlint.schema import VitestSettings
from tests.estree_builders import (
    arrow,
    call,
    chain,
    declare,
    expect_call,
    find_all,
    import_from,
    lit,
    member,
    object_pattern,
    program,
    tagged,
    template,
)


def _parser(payload, settings: VitestSettings | None = None):
    tree = build_tree(payload)
    return tree, FnCallParser(ScopeIndex(tree), settings)


def _calls(payload, settings: VitestSettings | None = None):
    tree, parser = _parser(payload, settings)
    return parser, find_all(tree, "CallExpression")


@pytest.mark.parametrize(
    ("name", "kind"),
    [
        ("expect", FnCallKind.EXPECT),
        ("expectTypeOf", FnCallKind.EXPECT_TYPE_OF),
        ("assertType", FnCallKind.EXPECT_TYPE_OF),
        ("vi", FnCallKind.VI),
        ("suite", FnCallKind.DESCRIBE),
        ("xdescribe", FnCallKind.DESCRIBE),
        ("bench", FnCallKind.TEST),
        ("xit", FnCallKind.TEST),
        ("afterAll", FnCallKind.HOOK),
        ("render", FnCallKind.UNKNOWN),
    ],
)
def test_determine_fn_type(name: str, kind: FnCallKind) -> None:
    assert determine_fn_type(name) is kind


def test_is_valid_chain_rules() -> None:
    assert is_valid_chain("test", [])
    assert is_valid_chain("test", ["concurrent", "only"])
    assert is_valid_chain("describe", ["skip", "each"])
    assert not is_valid_chain("test", ["each", "only"])
    assert not is_valid_chain("test", ["only", "only"])
    assert not is_valid_chain("test", ["shuffle"])
    assert not is_valid_chain("xit", ["only"])
    assert not is_valid_chain("beforeEach", ["skip"])
    assert not is_valid_chain("render", [])
    assert not is_valid_chain("test", [None])


def test_accessor_value_handles_literals_and_templates() -> None:
    tree = build_tree(program(lit("only"), template("skip"), lit(3)))
    values = [accessor_value(statement.expression) for statement in tree.children("body")]

    assert values == ["only", "skip", None]


def test_classify_describe_test_hook_and_vi() -> None:
    parser, calls = _calls(
        program(
            call("describe", lit("s"), arrow()),
            call("it", lit("a"), arrow()),
            call("beforeAll", arrow()),
            call(chain("vi", "fn")),
            call("render", lit("x")),
        )
    )

    assert [parser.classify(node) for node in calls] == [
        FnCallKind.DESCRIBE,
        FnCallKind.TEST,
        FnCallKind.HOOK,
        FnCallKind.VI,
        None,
    ]


def test_computed_string_members_are_accessors() -> None:
    parser, calls = _calls(program(call(member("test", "skip", computed=True), lit("a"), arrow())))

    parsed = parser.parse(calls[0])
    assert parsed is not None
    assert parsed.member_names == ("skip",)


def test_each_requires_the_produced_function_to_be_called() -> None:
    each = call(chain("test", "each"), {"type": "ArrayExpression", "elements": []})
    parser, calls = _calls(program(call(each, lit("a"), arrow())))
    outer, inner = calls

    assert parser.classify(outer) is FnCallKind.TEST
    assert parser.classify(inner) is None


def test_tagged_template_each_is_a_test() -> None:
    parser, calls = _calls(program(call(tagged(chain("test", "each"), "a | b"), lit("a"), arrow())))

    assert parser.classify(calls[0]) is FnCallKind.TEST


def test_tagged_template_requires_each() -> None:
    parser, calls = _calls(program(call(tagged(chain("test", "only"), "a"), lit("a"), arrow())))

    assert parser.classify(calls[0]) is None


def test_imports_from_other_sources_are_not_framework_calls() -> None:
    parser, calls = _calls(program(import_from("node:test", "test"), call("test", lit("a"), arrow())))

    assert parser.classify(calls[0]) is None


def test_configured_import_sources() -> None:
    payload = program(import_from("@acme/vitest", "test"), call("test", lit("a"), arrow()))
    settings = VitestSettings(import_sources=["vitest", "@acme/vitest"])
    parser, calls = _calls(payload, settings)

    parsed = parser.parse(calls[0])
    assert parsed is not None
    assert parsed.head.kind is HeadKind.IMPORT


def test_require_destructuring_counts_as_import() -> None:
    require = call("require", lit("vitest"))
    parser, calls = _calls(
        program(
            declare(object_pattern(("it", "spec")), require),
            call("spec", lit("a"), arrow()),
        )
    )

    parsed = parser.parse(calls[-1])
    assert parsed is not None
    assert (parsed.name, parsed.head.kind) == ("it", HeadKind.IMPORT)


def test_global_aliases_map_to_framework_names() -> None:
    settings = VitestSettings(global_aliases={"test": ["scenario"]})
    parser, calls = _calls(program(call("scenario", lit("a"), arrow())), settings)

    parsed = parser.parse(calls[0])
    assert parsed is not None
    assert parsed.name == "test"
    assert parsed.head.original == "test"
    assert parsed.head.local == "scenario"


def test_local_shadowing_hides_globals() -> None:
    parser, calls = _calls(
        program(
            declare("expect", arrow()),
            call(member(call("expect", lit(1)), "toBe"), lit(1)),
        )
    )

    assert all(parser.parse(node) is None for node in calls)


def test_extended_binding_needs_the_local_binding_pass() -> None:
    empty = {"type": "ObjectExpression", "properties": []}
    parser, calls = _calls(
        program(
            declare("it", call(chain("test", "extend"), empty)),
            call("it", lit("a"), arrow()),
        )
    )
    usage = calls[-1]

    assert parser.parse(usage) is None
    parsed = parser.parse(usage, follow_local_bindings=True)
    assert parsed is not None
    assert parsed.kind is FnCallKind.TEST
    assert parsed.head.kind is HeadKind.EXTENDED


def test_extend_of_non_test_root_is_not_followed() -> None:
    empty = {"type": "ObjectExpression", "properties": []}
    parser, calls = _calls(
        program(
            declare("it", call(chain("describe", "extend"), empty)),
            call("it", lit("a"), arrow()),
        )
    )

    assert parser.parse(calls[-1], follow_local_bindings=True) is None


def test_expect_parse_splits_modifiers_and_matcher() -> None:
    parser, calls = _calls(program(expect_call(1, "toEqual", 2, modifiers=("rejects", "not"))))

    parsed = parser.parse(calls[0])
    assert isinstance(parsed, ParsedExpectCall)
    assert parsed.kind is FnCallKind.EXPECT
    assert accessor_value(parsed.matcher) == "toEqual"
    assert [accessor_value(node) for node in parsed.modifiers] == ["rejects", "not"]
    assert [node.get("value") for node in parsed.args] == [2]


@pytest.mark.parametrize(
    ("modifiers", "reason"),
    [
        (("not", "not"), ExpectParseFailure.MODIFIER_UNKNOWN),
        (("soon",), ExpectParseFailure.MODIFIER_UNKNOWN),
        (("resolves", "rejects"), ExpectParseFailure.MODIFIER_UNKNOWN),
    ],
)
def test_expect_parse_reports_unknown_modifiers(modifiers, reason) -> None:
    parser, calls = _calls(program(expect_call(modifiers=modifiers)))

    assert parser.parse_with_reason(calls[0]) is reason
    assert parser.parse(calls[0]) is None


def test_expect_without_called_matcher() -> None:
    parser, calls = _calls(
        program(
            call("expect", lit(1)),
            member(call("expect", lit(2)), "toBe"),
        )
    )

    assert parser.parse_with_reason(calls[0]) is ExpectParseFailure.MATCHER_NOT_FOUND
    assert parser.parse_with_reason(calls[1]) is ExpectParseFailure.MATCHER_NOT_CALLED


def test_only_the_top_of_an_expect_chain_parses() -> None:
    chained = call(member(expect_call(1, "toBe", 1), "toBe"), lit(2))
    parser, calls = _calls(program(chained))

    assert [parser.classify(node) for node in calls] == [FnCallKind.EXPECT, None, None]
    assert find_top_most_call_expression(calls[2]) is calls[0]


def test_expect_passed_as_argument_is_its_own_chain_top() -> None:
    parser, calls = _calls(program(call("wrap", expect_call())))
    wrapped = calls[1]

    assert find_top_most_call_expression(wrapped) is wrapped
    assert parser.classify(wrapped) is FnCallKind.EXPECT


def test_optional_chain_expect_parses() -> None:
    subject = call("expect", lit(1))
    optional = {
        "type": "ChainExpression",
        "expression": call(member(subject, "toBe", optional=True), lit(1)),
    }
    parser, calls = _calls(program(optional))

    assert parser.classify(calls[0]) is FnCallKind.EXPECT
    assert parser.classify(calls[1]) is None


def test_test_context_parameters_resolve_as_framework_heads() -> None:
    body = arrow(expect_call(), params=(object_pattern("expect"),))
    parser, calls = _calls(program(call("test", lit("a"), body)))

    parsed = parser.parse(calls[1])
    assert parsed is not None
    assert parsed.head.kind is HeadKind.TEST_CONTEXT


def test_is_known_call_of_kind_checks_name_and_kind() -> None:
    parser, calls = _calls(
        program(
            call("it", lit("a"), arrow()),
            call("describe", lit("s"), arrow()),
            call(chain("test", "only"), lit("a"), arrow()),
        )
    )
    it_call, describe_call, only_call = calls

    assert parser.is_known_call_of_kind(it_call, FnCallKind.TEST, ("it", "test"))
    assert not parser.is_known_call_of_kind(describe_call, FnCallKind.TEST, ("it", "test", "describe"))
    assert not parser.is_known_call_of_kind(only_call, FnCallKind.TEST, ("it", "test"))


def test_parse_results_are_cached_per_node() -> None:
    parser, calls = _calls(program(call("test", lit("a"), arrow())))

    assert parser.parse(calls[0]) is parser.parse(calls[0])

from __future__ import annotations

from typing import Iterator

from vitlint.analysis.rule import Rule
from vitlint.invariants import never

_RULES_BY_NAME: dict[str, Rule] = {}


def register_rule(rule: Rule) -> None:
    _RULES_BY_NAME[rule.name] = rule


def has_rule(name: str) -> bool:
    return name in _RULES_BY_NAME


def rule_for_name(name: str) -> Rule:
    rule = _RULES_BY_NAME.get(name)
    if rule is None:
        never("unknown rule", rule=name)
    return rule


def iter_rules() -> Iterator[Rule]:
    for name in sorted(_RULES_BY_NAME):
        yield _RULES_BY_NAME[name]


def _register_builtin_rules() -> None:
    from vitlint.rules.max_expects import rule as max_expects

    register_rule(max_expects)


_register_builtin_rules()

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generic, Mapping, TypeVar

from pydantic import BaseModel

from vitlint.analysis.fn_call import FnCallParser
from vitlint.estree.nodes import Node
from vitlint.estree.scope import ScopeIndex
from vitlint.estree.traversal import Listener
from vitlint.invariants import never
from vitlint.schema import VitestSettings

OptionsT = TypeVar("OptionsT", bound=BaseModel)

_TEMPLATE_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def render_message(template: str, data: Mapping[str, object]) -> str:
    """Fill ``{{ name }}`` placeholders; unknown names are left untouched."""

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in data:
            return match.group(0)
        return str(data[key])

    return _TEMPLATE_RE.sub(_replace, template)


@dataclass(frozen=True)
class RuleDocs:
    description: str
    recommended: bool = False
    requires_type_checking: bool = False


@dataclass(frozen=True)
class RuleMeta(Generic[OptionsT]):
    docs: RuleDocs
    messages: Mapping[str, str]
    type: str
    options_model: type[OptionsT]


@dataclass(frozen=True)
class Diagnostic:
    rule_id: str
    message_id: str
    message: str
    severity: str
    node: Node = field(repr=False, compare=False)
    data: Mapping[str, object] = field(default_factory=dict, compare=False)
    path: Path | None = None
    line: int = 0
    column: int = 0
    end_line: int = 0
    end_column: int = 0

    @property
    def sort_key(self) -> tuple[int, int, str, str]:
        return (self.line, self.column, self.rule_id, self.message)


class RuleContext(Generic[OptionsT]):
    def __init__(
        self,
        *,
        rule_id: str,
        meta: RuleMeta[OptionsT],
        severity: str,
        settings: VitestSettings,
        scopes: ScopeIndex,
        fn_calls: FnCallParser,
        sink: Callable[[Diagnostic], None],
        path: Path | None = None,
    ) -> None:
        self.rule_id = rule_id
        self.meta = meta
        self.severity = severity
        self.settings = settings
        self.scopes = scopes
        self.fn_calls = fn_calls
        self.path = path
        self._sink = sink

    def report(self, *, node: Node, message_id: str, data: Mapping[str, object] | None = None) -> None:
        template = self.meta.messages.get(message_id)
        if template is None:
            never("unknown message id", rule=self.rule_id, message_id=message_id)
        payload = dict(data or {})
        loc = node.loc
        self._sink(
            Diagnostic(
                rule_id=self.rule_id,
                message_id=message_id,
                message=render_message(template, payload),
                severity=self.severity,
                node=node,
                data=payload,
                path=self.path,
                line=loc.start_line if loc else 0,
                column=loc.start_column + 1 if loc else 0,
                end_line=loc.end_line if loc else 0,
                end_column=loc.end_column + 1 if loc else 0,
            )
        )


@dataclass(frozen=True)
class Rule(Generic[OptionsT]):
    name: str
    meta: RuleMeta[OptionsT]
    default_options: OptionsT
    create: Callable[[RuleContext[OptionsT], OptionsT], Mapping[str, Listener]]

    def resolve_options(self, raw: Mapping[str, object] | None = None) -> OptionsT:
        """Merge raw options over the defaults and validate the result."""
        merged = self.default_options.model_dump()
        merged.update(raw or {})
        return self.meta.options_model.model_validate(merged)


def create_rule(
    *,
    name: str,
    meta: RuleMeta[OptionsT],
    default_options: OptionsT,
    create: Callable[[RuleContext[OptionsT], OptionsT], Mapping[str, Listener]],
) -> Rule[OptionsT]:
    return Rule(name=name, meta=meta, default_options=default_options, create=create)

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Mapping

from pydantic import BaseModel

from vitlint.analysis.fn_call import FnCallParser
from vitlint.analysis.registry import has_rule, rule_for_name
from vitlint.analysis.rule import Diagnostic, RuleContext
from vitlint.config import (
    TomlTable,
    load_config,
    exclude_dirs,
    normalize_severity,
    path_defaults,
    rules_defaults,
    vitest_settings_defaults,
)
from vitlint.estree.ingest import ParseFailureWitness, iter_estree_paths, load_estree_file
from vitlint.estree.nodes import Node
from vitlint.estree.scope import ScopeIndex
from vitlint.estree.traversal import SelectorDispatcher, iter_traversal_events
from vitlint.exceptions import ConfigError, EstreeLoadError
from vitlint.schema import DiagnosticDTO, LintResponse, ParseFailureDTO, VitestSettings

MAX_EXPECTS_RULE = "max-expects"


@dataclass(frozen=True)
class RuleSetting:
    severity: str = "error"
    options: Mapping[str, object] = field(default_factory=dict)


def _default_rules() -> dict[str, RuleSetting]:
    return {MAX_EXPECTS_RULE: RuleSetting()}


@dataclass(frozen=True)
class LintConfig:
    rules: Mapping[str, RuleSetting] = field(default_factory=_default_rules)
    settings: VitestSettings = field(default_factory=VitestSettings)
    exclude_dirs: tuple[str, ...] = ()

    @classmethod
    def from_toml(cls, data: TomlTable) -> LintConfig:
        rules = _default_rules()
        for name, table in rules_defaults(data).items():
            if not has_rule(name):
                raise ConfigError(f"unknown rule in configuration: {name}")
            options = {key: value for key, value in table.items() if key != "severity"}
            rules[name] = RuleSetting(severity=normalize_severity(table.get("severity")), options=options)
        return cls(
            rules=rules,
            settings=VitestSettings.model_validate(vitest_settings_defaults(data)),
            exclude_dirs=tuple(exclude_dirs(path_defaults(data))),
        )

    def with_rule_options(self, rule_id: str, **options: object) -> LintConfig:
        current = self.rules.get(rule_id, RuleSetting())
        merged = {**current.options, **options}
        rules = dict(self.rules)
        rules[rule_id] = replace(current, options=merged)
        return replace(self, rules=rules)

    def with_exclude_dirs(self, names: Iterable[str]) -> LintConfig:
        return replace(self, exclude_dirs=tuple(dict.fromkeys([*self.exclude_dirs, *names])))

    def enabled_rules(self) -> list[tuple[str, RuleSetting]]:
        return [(name, setting) for name, setting in sorted(self.rules.items()) if setting.severity != "off"]

    def resolve_options(self) -> dict[str, BaseModel]:
        """Validate every enabled rule's options; raises pydantic ValidationError."""
        return {
            name: rule_for_name(name).resolve_options(setting.options)
            for name, setting in self.enabled_rules()
        }


def build_lint_config(
    *,
    root: Path | None = None,
    config_path: Path | None = None,
    max_expects: int | float | None = None,
    exclude: list[str] | None = None,
) -> LintConfig:
    """Load vitlint.toml, apply command-line overrides and validate options."""
    lint_config = LintConfig.from_toml(load_config(root=root, config_path=config_path))
    if max_expects is not None:
        lint_config = lint_config.with_rule_options(MAX_EXPECTS_RULE, max=max_expects)
    if exclude:
        lint_config = lint_config.with_exclude_dirs(exclude)
    lint_config.resolve_options()
    return lint_config


def lint_tree(tree: Node, *, config: LintConfig | None = None, path: Path | None = None) -> list[Diagnostic]:
    config = config or LintConfig()
    scopes = ScopeIndex(tree)
    fn_calls = FnCallParser(scopes, config.settings)
    diagnostics: list[Diagnostic] = []
    dispatcher = SelectorDispatcher()
    for name, options in config.resolve_options().items():
        rule = rule_for_name(name)
        context = RuleContext(
            rule_id=name,
            meta=rule.meta,
            severity=config.rules[name].severity,
            settings=config.settings,
            scopes=scopes,
            fn_calls=fn_calls,
            sink=diagnostics.append,
            path=path,
        )
        dispatcher.register(rule.create(context, options))
    dispatcher.run(iter_traversal_events(tree))
    return sorted(diagnostics, key=lambda diagnostic: diagnostic.sort_key)


@dataclass
class LintResult:
    diagnostics_by_path: dict[Path, list[Diagnostic]] = field(default_factory=dict)
    parse_failures: list[ParseFailureWitness] = field(default_factory=list)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        out: list[Diagnostic] = []
        for path in sorted(self.diagnostics_by_path):
            out.extend(self.diagnostics_by_path[path])
        return out

    def count(self, severity: str) -> int:
        return sum(1 for diagnostic in self.diagnostics if diagnostic.severity == severity)

    def to_response(self) -> LintResponse:
        return LintResponse(
            diagnostics=[diagnostic_dto(diagnostic) for diagnostic in self.diagnostics],
            parse_failures=[
                ParseFailureDTO(path=str(witness.path), stage=witness.stage, error=witness.error)
                for witness in self.parse_failures
            ],
            stats={
                "files": len(self.diagnostics_by_path) + len(self.parse_failures),
                "errors": self.count("error"),
                "warnings": self.count("warn"),
            },
        )


def diagnostic_dto(diagnostic: Diagnostic) -> DiagnosticDTO:
    return DiagnosticDTO(
        path=str(diagnostic.path) if diagnostic.path is not None else "",
        line=diagnostic.line,
        column=diagnostic.column,
        end_line=diagnostic.end_line,
        end_column=diagnostic.end_column,
        rule_id=diagnostic.rule_id,
        message_id=diagnostic.message_id,
        message=diagnostic.message,
        severity=diagnostic.severity,
    )


def lint_paths(paths: Iterable[Path], *, config: LintConfig | None = None) -> LintResult:
    config = config or LintConfig()
    result = LintResult()
    for path in iter_estree_paths(paths, exclude_dirs=config.exclude_dirs):
        try:
            tree = load_estree_file(path)
        except EstreeLoadError as exc:
            result.parse_failures.append(ParseFailureWitness(path=path, stage="load", error=str(exc)))
            continue
        result.diagnostics_by_path[path] = lint_tree(tree, config=config, path=path)
    return result

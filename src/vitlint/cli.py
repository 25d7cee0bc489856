from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from vitlint.analysis.linter import LintResult, build_lint_config, lint_paths
from vitlint.analysis.registry import iter_rules
from vitlint.analysis.rule import Diagnostic, Rule
from vitlint.exceptions import ConfigError
from vitlint.schema import RuleInfoDTO

app = typer.Typer(add_completion=False)

_OUTPUT_FORMATS = ("text", "json")

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_USAGE = 2


def format_diagnostic(diagnostic: Diagnostic) -> str:
    return (
        f"{diagnostic.path}:{diagnostic.line}:{diagnostic.column}: "
        f"{diagnostic.severity} {diagnostic.message} [{diagnostic.rule_id}]"
    )


def _summary_line(result: LintResult) -> str:
    errors = result.count("error")
    warnings = result.count("warn")
    total = errors + warnings
    noun = "problem" if total == 1 else "problems"
    return f"{total} {noun} ({errors} errors, {warnings} warnings)"


def _emit_text(result: LintResult) -> None:
    for diagnostic in result.diagnostics:
        typer.echo(format_diagnostic(diagnostic))
    for witness in result.parse_failures:
        typer.echo(f"{witness.path}: could not {witness.stage} ESTree document: {witness.error}", err=True)
    typer.echo(_summary_line(result))


def _exit_code(result: LintResult, *, fail_on_violations: bool) -> int:
    if result.parse_failures:
        return EXIT_USAGE
    if fail_on_violations and result.count("error"):
        return EXIT_VIOLATIONS
    return EXIT_OK


@app.command("check")
def check(
    paths: List[Path] = typer.Argument(..., help="ESTree JSON files or directories to lint."),
    max_expects: Optional[float] = typer.Option(None, "--max", help="Maximum assertion calls per test."),
    config: Optional[Path] = typer.Option(None, "--config"),
    root: Path = typer.Option(Path("."), "--root"),
    output_format: str = typer.Option("text", "--format"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude"),
    fail_on_violations: bool = typer.Option(True, "--fail-on-violations/--no-fail-on-violations"),
) -> None:
    """Lint test files delivered as ESTree JSON syntax trees."""
    if output_format not in _OUTPUT_FORMATS:
        raise typer.BadParameter(f"expected one of {', '.join(_OUTPUT_FORMATS)}", param_hint="--format")
    try:
        lint_config = build_lint_config(
            root=root,
            config_path=config,
            max_expects=max_expects,
            exclude=exclude,
        )
    except (ConfigError, ValidationError) as exc:
        typer.echo(f"invalid configuration: {exc}", err=True)
        raise typer.Exit(code=EXIT_USAGE) from exc
    result = lint_paths(paths, config=lint_config)
    if output_format == "json":
        typer.echo(result.to_response().model_dump_json(indent=2))
    else:
        _emit_text(result)
    raise typer.Exit(code=_exit_code(result, fail_on_violations=fail_on_violations))


def rule_info(rule: Rule) -> RuleInfoDTO:
    return RuleInfoDTO(
        name=rule.name,
        description=rule.meta.docs.description,
        type=rule.meta.type,
        recommended=rule.meta.docs.recommended,
        messages=dict(rule.meta.messages),
        options_schema=rule.meta.options_model.model_json_schema(),
    )


@app.command("rules")
def rules(as_json: bool = typer.Option(False, "--json")) -> None:
    """List the registered rules."""
    infos = [rule_info(rule) for rule in iter_rules()]
    if as_json:
        typer.echo(json.dumps([info.model_dump() for info in infos], indent=2, sort_keys=True))
        return
    for info in infos:
        typer.echo(f"{info.name}: {info.description}")


@app.command("lsp")
def lsp() -> None:
    """Run the language server over stdio."""
    from vitlint.server import start

    start()


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()  # pragma: no cover

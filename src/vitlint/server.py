from __future__ import annotations

from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlparse

from pygls.lsp.server import LanguageServer
from pydantic import ValidationError
from lsprotocol.types import (
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    Diagnostic,
    DiagnosticSeverity,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
)

from vitlint import __version__
from vitlint.analysis.linter import build_lint_config, lint_paths, lint_tree
from vitlint.analysis.rule import Diagnostic as LintDiagnostic
from vitlint.estree.ingest import ESTREE_SUFFIXES, load_estree_text
from vitlint.exceptions import ConfigError, EstreeLoadError
from vitlint.invariants import never
from vitlint.schema import LintRequest

server = LanguageServer("vitlint", __version__)
LINT_COMMAND = "vitlint.lint"

_SEVERITIES = {
    "error": DiagnosticSeverity.Error,
    "warn": DiagnosticSeverity.Warning,
}


def _uri_to_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)


def _is_estree_document(path: Path) -> bool:
    return path.name.endswith(ESTREE_SUFFIXES)


def _position(line: int, column: int) -> Position:
    # Lint positions are 1-based; 0 means the node carried no location.
    return Position(line=max(line - 1, 0), character=max(column - 1, 0))


def _to_lsp_diagnostic(diagnostic: LintDiagnostic) -> Diagnostic:
    return Diagnostic(
        range=Range(
            start=_position(diagnostic.line, diagnostic.column),
            end=_position(diagnostic.end_line, diagnostic.end_column),
        ),
        message=diagnostic.message,
        severity=_SEVERITIES.get(diagnostic.severity, DiagnosticSeverity.Information),
        code=diagnostic.rule_id,
        source="vitlint",
    )


def _failure_diagnostic(message: str) -> Diagnostic:
    origin = Position(line=0, character=0)
    return Diagnostic(
        range=Range(start=origin, end=origin),
        message=message,
        severity=DiagnosticSeverity.Error,
        source="vitlint",
    )


def _diagnostics_for_text(text: str, path: Path, project_root: Path | None) -> list[Diagnostic]:
    try:
        config = build_lint_config(root=project_root)
    except (ConfigError, ValidationError) as exc:
        return [_failure_diagnostic(f"invalid configuration: {exc}")]
    try:
        tree = load_estree_text(text, path=path)
    except EstreeLoadError as exc:
        return [_failure_diagnostic(f"could not load ESTree document: {exc}")]
    return [_to_lsp_diagnostic(diagnostic) for diagnostic in lint_tree(tree, config=config, path=path)]


def _diagnostics_for_path(path: Path, project_root: Path | None) -> list[Diagnostic]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return [_failure_diagnostic(f"could not read document: {exc}")]
    return _diagnostics_for_text(text, path, project_root)


def _workspace_root(ls: LanguageServer) -> Path | None:
    root_path = ls.workspace.root_path
    return Path(root_path) if root_path else None


def _publish(ls: LanguageServer, uri: str, diagnostics: list[Diagnostic]) -> None:
    ls.text_document_publish_diagnostics(PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics))


@server.command(LINT_COMMAND)
def lint_command(ls: LanguageServer, payload: dict | None = None) -> dict:
    if not isinstance(payload, dict):
        never("missing command payload", command=LINT_COMMAND)
    try:
        request = LintRequest.model_validate(payload)
        config = build_lint_config(
            root=_workspace_root(ls) if ls is not None else None,
            config_path=Path(request.config) if request.config else None,
            max_expects=request.max,
            exclude=request.exclude,
        )
    except (ConfigError, ValidationError) as exc:
        return {"diagnostics": [], "parse_failures": [], "stats": {}, "errors": [str(exc)]}
    result = lint_paths([Path(item) for item in request.paths], config=config)
    return result.to_response().model_dump()


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    path = _uri_to_path(uri)
    if not _is_estree_document(path):
        return
    _publish(ls, uri, _diagnostics_for_text(params.text_document.text, path, _workspace_root(ls)))


@server.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls: LanguageServer, params: DidSaveTextDocumentParams) -> None:
    uri = params.text_document.uri
    path = _uri_to_path(uri)
    if not _is_estree_document(path):
        return
    _publish(ls, uri, _diagnostics_for_path(path, _workspace_root(ls)))


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server on stdio."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover

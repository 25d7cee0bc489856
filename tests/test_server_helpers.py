from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest
from lsprotocol.types import DiagnosticSeverity

from vitlint import server
from vitlint.exceptions import NeverThrown
from tests.estree_builders import arrow, at, call, expect_call, lit, program


class _DummyWorkspace:
    def __init__(self, root_path: str) -> None:
        self.root_path = root_path


class _DummyServer:
    def __init__(self, root_path: str) -> None:
        self.workspace = _DummyWorkspace(root_path)
        self.published: list[object] = []

    def text_document_publish_diagnostics(self, params) -> None:
        self.published.append(params)


def _source(assertions: int) -> str:
    body = arrow(*[at(expect_call(index), index + 2, 4) for index in range(assertions)])
    return json.dumps(program(call("test", lit("a"), body)))


def test_uri_to_path() -> None:
    path = Path("/tmp/demo.test.json")
    assert server._uri_to_path(path.as_uri()) == path
    assert server._uri_to_path("relative/a.json") == Path("relative/a.json")


def test_position_converts_to_zero_based() -> None:
    position = server._position(3, 5)
    assert (position.line, position.character) == (2, 4)

    origin = server._position(0, 0)
    assert (origin.line, origin.character) == (0, 0)


def test_diagnostics_for_text_maps_lint_diagnostics(tmp_path: Path) -> None:
    (tmp_path / "vitlint.toml").write_text("[rules.max-expects]\nmax = 1\nseverity = 'warn'\n", encoding="utf-8")

    diagnostics = server._diagnostics_for_text(_source(2), tmp_path / "a.json", tmp_path)

    assert len(diagnostics) == 1
    diagnostic = diagnostics[0]
    assert diagnostic.code == "max-expects"
    assert diagnostic.source == "vitlint"
    assert diagnostic.severity == DiagnosticSeverity.Warning
    assert (diagnostic.range.start.line, diagnostic.range.start.character) == (2, 4)
    assert diagnostic.message == "Too many assertion calls (2) - maximum allowed is 1"


def test_diagnostics_for_text_reports_bad_documents(tmp_path: Path) -> None:
    diagnostics = server._diagnostics_for_text("{", tmp_path / "a.json", tmp_path)

    assert len(diagnostics) == 1
    assert diagnostics[0].message.startswith("could not load ESTree document")
    assert diagnostics[0].severity == DiagnosticSeverity.Error


def test_diagnostics_for_text_reports_bad_configuration(tmp_path: Path) -> None:
    (tmp_path / "vitlint.toml").write_text("[rules.max-asserts]\nmax = 1\n", encoding="utf-8")

    diagnostics = server._diagnostics_for_text(_source(1), tmp_path / "a.json", tmp_path)

    assert [d.message.startswith("invalid configuration") for d in diagnostics] == [True]


def test_diagnostics_for_missing_path(tmp_path: Path) -> None:
    diagnostics = server._diagnostics_for_path(tmp_path / "gone.json", tmp_path)

    assert diagnostics[0].message.startswith("could not read document")


def test_did_open_publishes_for_estree_documents(tmp_path: Path) -> None:
    ls = _DummyServer(str(tmp_path))
    document = tmp_path / "a.json"
    params = SimpleNamespace(text_document=SimpleNamespace(uri=document.as_uri(), text=_source(6)))

    server.did_open(ls, params)

    assert len(ls.published) == 1
    assert ls.published[0].uri == document.as_uri()
    assert [d.code for d in ls.published[0].diagnostics] == ["max-expects"]


def test_did_open_ignores_other_documents(tmp_path: Path) -> None:
    ls = _DummyServer(str(tmp_path))
    params = SimpleNamespace(text_document=SimpleNamespace(uri=(tmp_path / "a.ts").as_uri(), text=""))

    server.did_open(ls, params)

    assert ls.published == []


def test_did_save_reads_the_file(tmp_path: Path) -> None:
    ls = _DummyServer(str(tmp_path))
    document = tmp_path / "a.json"
    document.write_text(_source(0), encoding="utf-8")

    server.did_save(ls, SimpleNamespace(text_document=SimpleNamespace(uri=document.as_uri())))

    assert ls.published[0].diagnostics == []


def test_lint_command_returns_response_payload(tmp_path: Path) -> None:
    document = tmp_path / "a.json"
    document.write_text(_source(3), encoding="utf-8")

    result = server.lint_command(_DummyServer(str(tmp_path)), {"paths": [str(tmp_path)], "max": 2})

    assert result["stats"] == {"files": 1, "errors": 1, "warnings": 0}
    assert result["diagnostics"][0]["path"] == str(document)


def test_lint_command_reports_invalid_requests(tmp_path: Path) -> None:
    result = server.lint_command(None, {"paths": [str(tmp_path)], "max": "two"})

    assert result["diagnostics"] == []
    assert result["errors"]


def test_lint_command_requires_payload() -> None:
    with pytest.raises(NeverThrown):
        server.lint_command(None, None)


def test_start_uses_injected_runner() -> None:
    calls: list[str] = []

    server.start(lambda: calls.append("started"))

    assert calls == ["started"]

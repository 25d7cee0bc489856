from __future__ import annotations

import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from vitlint.analysis.linter import LintConfig


@pytest.fixture
def lint_config():
    def _make(max_expects: int | float = 5, **settings: object) -> LintConfig:
        config = LintConfig().with_rule_options("max-expects", max=max_expects)
        if settings:
            config = LintConfig(
                rules=config.rules,
                settings=config.settings.model_copy(update=settings),
            )
        return config

    return _make


@pytest.fixture
def write_estree():
    def _write(path: Path, payload: dict[str, object]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        return path

    return _write

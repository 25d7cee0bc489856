from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from vitlint.estree.nodes import Node, build_tree
from vitlint.exceptions import EstreeLoadError

ESTREE_SUFFIXES = (".json",)


@dataclass(frozen=True)
class ParseFailureWitness:
    path: Path
    stage: str
    error: str


def _unwrap(payload: object) -> object:
    # Parser wrappers commonly emit {"ast": {...}} alongside tokens/comments.
    if isinstance(payload, Mapping) and "type" not in payload and isinstance(payload.get("ast"), Mapping):
        return payload["ast"]
    return payload


def load_estree_text(text: str, *, path: Path | None = None) -> Node:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EstreeLoadError(f"invalid JSON: {exc}", path=path) from exc
    except RecursionError as exc:
        raise EstreeLoadError("JSON nesting exceeds the decoder's depth limit", path=path) from exc
    try:
        return build_tree(_unwrap(payload))
    except EstreeLoadError as exc:
        raise EstreeLoadError(str(exc), path=path) from exc


def load_estree_file(path: Path) -> Node:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise EstreeLoadError(f"unreadable file: {exc}", path=path) from exc
    return load_estree_text(text, path=path)


def iter_estree_paths(paths: Iterable[Path], *, exclude_dirs: Iterable[str] = ()) -> list[Path]:
    """Expand input paths to ESTree documents, pruning excluded directories early."""
    excluded = set(exclude_dirs)
    out: list[Path] = []
    for path in paths:
        if path.is_dir():
            for root, dirnames, filenames in os.walk(path, topdown=True):
                dirnames[:] = sorted(d for d in dirnames if d not in excluded)
                for filename in sorted(filenames):
                    if filename.endswith(ESTREE_SUFFIXES):
                        out.append(Path(root) / filename)
        else:
            out.append(path)
    return sorted(set(out))

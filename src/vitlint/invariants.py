"""Invariant markers for vitlint."""

from __future__ import annotations

from typing import NoReturn

from vitlint.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The env payload is metadata only and travels on the raised exception.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)

"""Exception protocol markers for vitlint."""

from __future__ import annotations

from pathlib import Path


class NeverRaise(RuntimeError):
    """Sentinel exception that should be statically unreachable.

    Raising this exception signals that an internal invariant was broken: an
    unknown rule name, a listener selector the dispatcher cannot match, or a
    node shape the tree model cannot represent. It is never used for bad user
    input.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.reason = message
        self.env = dict(env or {})

    @property
    def env_payload(self) -> dict[str, str]:
        return {key: str(value) for key, value in sorted(self.env.items())}


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""


class EstreeLoadError(ValueError):
    """An ESTree JSON document could not be read or is not a syntax tree."""

    def __init__(self, message: str, *, path: Path | None = None):
        super().__init__(message)
        self.path = path


class ConfigError(ValueError):
    """The project configuration names something vitlint does not know."""

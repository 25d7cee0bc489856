"""vitlint package root."""

from vitlint.exceptions import NeverRaise, NeverThrown
from vitlint.invariants import never

__all__ = ["__version__", "NeverRaise", "NeverThrown", "never"]

__version__ = "0.1.0"
